from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.errors import NotFoundError
from app.models.notification import Notification
from app.models.person import NotificationPreference
from app.schemas.notification import NotificationPreferenceUpdate
from app.services.access import Identity
from app.services.common import apply_ordering, apply_pagination, coerce_uuid

logger = logging.getLogger(__name__)


class Notifications:
    @staticmethod
    def get(db: Session, identity: Identity, notification_id) -> Notification:
        notification = db.get(Notification, coerce_uuid(notification_id))
        # Another user's notification is reported as missing
        if not notification or notification.user_id != identity.user_id:
            raise NotFoundError("Notification not found")
        return notification

    @staticmethod
    def list(
        db: Session,
        identity: Identity,
        unread: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Notification]:
        stmt = select(Notification).where(Notification.user_id == identity.user_id)
        if unread:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = apply_ordering(
            stmt, "created_at", "desc", {"created_at": Notification.created_at}
        )
        return list(db.scalars(apply_pagination(stmt, limit, offset)).all())

    @staticmethod
    def unread_count(db: Session, identity: Identity) -> int:
        return db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == identity.user_id,
                Notification.is_read.is_(False),
            )
        ) or 0

    @staticmethod
    def mark_read(db: Session, identity: Identity, notification_id) -> Notification:
        notification = Notifications.get(db, identity, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            db.flush()
            logger.info("Marked notification %s as read", notification.id)
        return notification

    @staticmethod
    def mark_all_read(db: Session, identity: Identity) -> int:
        result = db.execute(
            update(Notification)
            .where(
                Notification.user_id == identity.user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        logger.info(
            "Marked all %d notifications as read for user %s",
            result.rowcount,
            identity.user_id,
        )
        return result.rowcount

    @staticmethod
    def delete(db: Session, identity: Identity, notification_id) -> None:
        notification = Notifications.get(db, identity, notification_id)
        db.delete(notification)
        db.flush()
        logger.info("Deleted notification %s", notification.id)


class NotificationPreferences:
    @staticmethod
    def get(db: Session, identity: Identity) -> NotificationPreference | None:
        return db.scalar(
            select(NotificationPreference).where(
                NotificationPreference.user_id == identity.user_id
            )
        )

    @staticmethod
    def upsert(
        db: Session, identity: Identity, payload: NotificationPreferenceUpdate
    ) -> NotificationPreference:
        data = {
            k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None
        }
        pref = NotificationPreferences.get(db, identity)
        if pref is None:
            pref = NotificationPreference(user_id=identity.user_id, **data)
            db.add(pref)
        else:
            for key, value in data.items():
                setattr(pref, key, value)
        db.flush()
        db.refresh(pref)
        logger.info("Saved notification preferences for user %s", identity.user_id)
        return pref


notifications = Notifications()
notification_preferences = NotificationPreferences()
