import logging
import uuid
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.models.notification import Notification, NotificationType
from app.models.person import NotificationPreference, User
from app.models.project import ProjectMember
from app.services.outbox import queue_email

logger = logging.getLogger(__name__)

# Preference flag that gates each notification type
_PREFERENCE_FIELD = {
    NotificationType.task_assigned: "task_assigned",
    NotificationType.document_uploaded: "document_updates",
    NotificationType.comment_mention: "comments_mentions",
    NotificationType.approval_status: "approval_updates",
    NotificationType.permission_change: "permission_changes",
}


def _wants(pref: NotificationPreference | None, channel: str, kind) -> bool:
    # No preference row means every channel is on
    if pref is None:
        return True
    channel_on = getattr(pref, channel)
    return channel_on is not False and getattr(pref, _PREFERENCE_FIELD[kind]) is not False


def app_link(path: str) -> str:
    return f"{settings.app_url.rstrip('/')}{path}"


class Dispatcher:
    @staticmethod
    def notify(
        db: Session,
        recipients: Iterable[uuid.UUID],
        kind: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
        email_data: dict | None = None,
        exclude: uuid.UUID | None = None,
    ) -> list[Notification]:
        """Create in-app rows now and queue emails for after commit.

        ``email_data`` set means an email using the template named after
        ``kind`` is sent to each recipient that allows it.
        """
        user_ids: list[uuid.UUID] = []
        for user_id in recipients:
            if user_id is None or user_id == exclude or user_id in user_ids:
                continue
            user_ids.append(user_id)
        if not user_ids:
            return []

        users = {
            u.id: u
            for u in db.scalars(select(User).where(User.id.in_(user_ids))).all()
        }
        prefs = {
            p.user_id: p
            for p in db.scalars(
                select(NotificationPreference).where(
                    NotificationPreference.user_id.in_(user_ids)
                )
            ).all()
        }

        created: list[Notification] = []
        for user_id in user_ids:
            user = users.get(user_id)
            if user is None or not user.is_active:
                continue
            pref = prefs.get(user_id)
            if _wants(pref, "in_app_enabled", kind):
                notification = Notification(
                    user_id=user_id,
                    type=kind,
                    title=title,
                    message=message,
                    link=link,
                )
                db.add(notification)
                created.append(notification)
            if email_data is not None and user.email and _wants(
                pref, "email_enabled", kind
            ):
                data = {"recipient_name": user.full_name, "link": app_link(link or "")}
                data.update(email_data)
                queue_email(db, kind.value, user.email, data)

        db.flush()
        logger.info(
            "Created %d %s notifications", len(created), kind.value
        )
        return created

    @staticmethod
    def project_member_ids(db: Session, project_id: uuid.UUID) -> list[uuid.UUID]:
        return list(
            db.scalars(
                select(ProjectMember.user_id).where(
                    ProjectMember.project_id == project_id
                )
            ).all()
        )


dispatcher = Dispatcher()
