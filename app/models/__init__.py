from app.models.person import (  # noqa: F401
    Client,
    Company,
    NotificationPreference,
    User,
    UserRole,
)
from app.models.project import (  # noqa: F401
    ActivityLog,
    ApprovalStatus,
    CityApproval,
    Correction,
    CorrectionStatus,
    Message,
    Project,
    ProjectMember,
    ProjectRole,
    ProjectStatus,
    Subtask,
    Task,
    TaskPriority,
    TaskStatus,
)
from app.models.document import Document, DocumentAccessLog  # noqa: F401
from app.models.notification import Notification, NotificationType  # noqa: F401
from app.models.invitation import Invitation, InvitationStatus  # noqa: F401
