"""Project-scoped access control.

Every project-scoped handler asks two questions, in order:

1. May this identity see the project at all?  Yes when the user has a
   ``project_members`` row, created the project, or is a global admin of the
   company that owns it.
2. For membership and lifecycle changes, may it manage the project?  Yes when
   the effective project role is owner, manager or admin, or the caller is a
   company admin.

The decision itself (:func:`evaluate_access`) is a pure function over plain
values so it can be tested without a database; :func:`require_project_access`
and :func:`require_project_manager` load the facts and raise before a handler
touches anything.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.person import User, UserRole
from app.models.project import Project, ProjectMember, ProjectRole
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)

MANAGE_ROLES = frozenset({ProjectRole.owner, ProjectRole.manager, ProjectRole.admin})


@dataclass(frozen=True)
class Identity:
    """The resolved caller, passed explicitly into every service call."""

    user_id: uuid.UUID
    role: UserRole
    company_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin


@dataclass(frozen=True)
class ProjectFacts:
    id: uuid.UUID
    company_id: uuid.UUID | None
    created_by: uuid.UUID


@dataclass(frozen=True)
class ProjectAccess:
    project_id: uuid.UUID
    role: ProjectRole | None
    company_admin: bool = False

    @property
    def allowed(self) -> bool:
        return self.role is not None or self.company_admin

    @property
    def effective_role(self) -> ProjectRole | None:
        if self.role is not None:
            return self.role
        if self.company_admin:
            return ProjectRole.admin
        return None

    @property
    def can_manage(self) -> bool:
        return self.company_admin or self.role in MANAGE_ROLES


def is_company_admin(identity: Identity, company_id: uuid.UUID | None) -> bool:
    """Admin bypass is scoped to the admin's own tenant.

    A caller or project without a company never matches.
    """
    return (
        identity.is_admin
        and identity.company_id is not None
        and company_id is not None
        and identity.company_id == company_id
    )


def evaluate_access(
    identity: Identity,
    project: ProjectFacts,
    membership_role: ProjectRole | None,
) -> ProjectAccess:
    role = membership_role
    # The creator stays owner whatever their membership row says
    if project.created_by == identity.user_id:
        role = ProjectRole.owner
    return ProjectAccess(
        project_id=project.id,
        role=role,
        company_admin=is_company_admin(identity, project.company_id),
    )


def has_access(
    identity: Identity,
    project: ProjectFacts,
    membership_role: ProjectRole | None,
) -> bool:
    return evaluate_access(identity, project, membership_role).allowed


# ---------------------------------------------------------------------------
# Storage-backed checks
# ---------------------------------------------------------------------------


def membership_role(
    db: Session, project_id: uuid.UUID, user_id: uuid.UUID
) -> ProjectRole | None:
    return db.scalar(
        select(ProjectMember.role).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    )


def get_project_access(
    db: Session, identity: Identity, project: Project
) -> ProjectAccess:
    facts = ProjectFacts(
        id=project.id, company_id=project.company_id, created_by=project.created_by
    )
    return evaluate_access(
        identity, facts, membership_role(db, project.id, identity.user_id)
    )


def require_project_access(
    db: Session, identity: Identity, project_id
) -> tuple[Project, ProjectAccess]:
    project = db.get(Project, coerce_uuid(project_id))
    if not project:
        raise NotFoundError("Project not found")
    access = get_project_access(db, identity, project)
    if not access.allowed:
        logger.warning(
            "Denied user %s access to project %s", identity.user_id, project.id
        )
        raise AuthorizationError("Access denied to this project")
    return project, access


def require_project_manager(
    db: Session, identity: Identity, project_id
) -> tuple[Project, ProjectAccess]:
    project, access = require_project_access(db, identity, project_id)
    if not access.can_manage:
        logger.warning(
            "Denied user %s management of project %s (role %s)",
            identity.user_id,
            project.id,
            access.role.value if access.role else None,
        )
        raise AuthorizationError(
            "Only project owners, managers and admins can change this project"
        )
    return project, access


def require_project_assignee(db: Session, project: Project, user_id) -> User:
    """Load a user who is about to be given work on ``project``.

    The user must be active and able to see the project themselves, so an
    assignment never exposes project details to someone outside it.
    """
    user = db.get(User, coerce_uuid(user_id))
    if not user or not user.is_active:
        raise NotFoundError("Assignee not found")
    assignee = Identity(user_id=user.id, role=user.role, company_id=user.company_id)
    if not get_project_access(db, assignee, project).allowed:
        logger.warning(
            "Rejected assignment of user %s on project %s", user.id, project.id
        )
        raise ValidationError("Assignee does not have access to this project")
    return user


def visible_project_ids(identity: Identity):
    """Subquery of project ids the identity may read, for list filters."""
    member_of = select(ProjectMember.project_id).where(
        ProjectMember.user_id == identity.user_id
    )
    conditions = [Project.id.in_(member_of), Project.created_by == identity.user_id]
    if identity.is_admin and identity.company_id is not None:
        conditions.append(Project.company_id == identity.company_id)
    return select(Project.id).where(or_(*conditions))
