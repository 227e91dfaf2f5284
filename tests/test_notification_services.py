import uuid

import pytest

from app.errors import NotFoundError
from app.models.notification import Notification, NotificationType
from app.schemas.notification import NotificationPreferenceUpdate
from app.services.notification import notification_preferences, notifications


@pytest.fixture()
def notifications_batch(db_session, user):
    items = []
    for i in range(3):
        n = Notification(
            user_id=user.id,
            type=NotificationType.task_assigned,
            title=f"Notification {i}",
            message=f"Body {i}",
        )
        db_session.add(n)
        items.append(n)
    db_session.commit()
    for n in items:
        db_session.refresh(n)
    return items


@pytest.fixture()
def foreign_notification(db_session, teammate):
    n = Notification(
        user_id=teammate.id,
        type=NotificationType.comment_mention,
        title="Not yours",
        message="Body",
    )
    db_session.add(n)
    db_session.commit()
    db_session.refresh(n)
    return n


class TestNotificationsService:
    def test_list_only_own(
        self, db_session, identity, notifications_batch, foreign_notification
    ):
        rows = notifications.list(db_session, identity)
        assert len(rows) == 3
        assert all(n.user_id == identity.user_id for n in rows)

    def test_list_limit(self, db_session, identity, notifications_batch):
        assert len(notifications.list(db_session, identity, limit=2)) == 2

    def test_mark_read(self, db_session, identity, notifications_batch):
        target = notifications_batch[0]
        result = notifications.mark_read(db_session, identity, target.id)
        assert result.is_read is True
        assert result.read_at is not None
        assert notifications.unread_count(db_session, identity) == 2
        assert len(notifications.list(db_session, identity, unread=True)) == 2

    def test_mark_all_read(self, db_session, identity, notifications_batch):
        assert notifications.mark_all_read(db_session, identity) == 3
        db_session.commit()
        assert notifications.unread_count(db_session, identity) == 0
        assert notifications.mark_all_read(db_session, identity) == 0

    def test_other_users_notification_is_missing(
        self, db_session, identity, foreign_notification
    ):
        with pytest.raises(NotFoundError):
            notifications.mark_read(db_session, identity, foreign_notification.id)
        with pytest.raises(NotFoundError):
            notifications.delete(db_session, identity, foreign_notification.id)

    def test_delete(self, db_session, identity, notifications_batch):
        notifications.delete(db_session, identity, notifications_batch[0].id)
        db_session.commit()
        assert db_session.get(Notification, notifications_batch[0].id) is None

    def test_get_not_found(self, db_session, identity):
        with pytest.raises(NotFoundError):
            notifications.get(db_session, identity, uuid.uuid4())


class TestNotificationPreferences:
    def test_missing_row(self, db_session, identity):
        assert notification_preferences.get(db_session, identity) is None

    def test_upsert_creates_then_updates(self, db_session, identity):
        pref = notification_preferences.upsert(
            db_session, identity, NotificationPreferenceUpdate(email_enabled=False)
        )
        db_session.commit()
        assert pref.email_enabled is False
        assert pref.task_assigned is True

        again = notification_preferences.upsert(
            db_session, identity, NotificationPreferenceUpdate(task_assigned=False)
        )
        db_session.commit()
        assert again.id == pref.id
        assert again.email_enabled is False
        assert again.task_assigned is False
