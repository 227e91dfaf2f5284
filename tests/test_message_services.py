import uuid

import pytest
from sqlalchemy import select

from app.errors import AuthorizationError, NotFoundError
from app.models.notification import Notification, NotificationType
from app.models.project import Message, ProjectMember, ProjectRole
from app.schemas.message import MessageCreate, MessageUpdate
from app.services.activity import activities
from app.services.messages import messages


@pytest.fixture()
def team_project(db_session, project, teammate):
    db_session.add(
        ProjectMember(project_id=project.id, user_id=teammate.id, role=ProjectRole.member)
    )
    db_session.commit()
    return project


def _post(db_session, identity, project, content="Site visit moved", **kwargs):
    message = messages.create(
        db_session,
        identity,
        MessageCreate(project_id=project.id, content=content, **kwargs),
    )
    db_session.commit()
    return message


class TestMessagesService:
    def test_mentions_notify_project_members_only(
        self, db_session, team_project, identity, teammate, outsider
    ):
        message = _post(
            db_session,
            identity,
            team_project,
            "@Bob please confirm",
            mentions=[teammate.id, outsider.id],
        )
        assert message.mentions == [str(teammate.id)]
        notes = db_session.scalars(select(Notification)).all()
        assert [(n.user_id, n.type) for n in notes] == [
            (teammate.id, NotificationType.comment_mention)
        ]
        assert notes[0].title == "Alice Architect mentioned you"

    def test_replies_are_threaded_one_level(
        self, db_session, team_project, identity, teammate, identity_for
    ):
        root = _post(db_session, identity, team_project)
        reply = _post(
            db_session, identity_for(teammate), team_project, "On it", parent_id=root.id
        )
        nested = _post(db_session, identity, team_project, "Thanks", parent_id=reply.id)
        assert nested.parent_id == root.id

        threads = messages.list(db_session, identity, team_project.id)
        assert [m.id for m in threads] == [root.id]
        assert [r.content for r in threads[0].replies] == ["On it", "Thanks"]

    def test_parent_must_be_in_project(
        self, db_session, team_project, identity
    ):
        with pytest.raises(NotFoundError):
            _post(db_session, identity, team_project, parent_id=uuid.uuid4())

    def test_edit_own_message_only(
        self, db_session, team_project, identity, teammate, identity_for
    ):
        message = _post(db_session, identity, team_project)
        with pytest.raises(AuthorizationError):
            messages.update(
                db_session, identity_for(teammate), message.id, MessageUpdate(content="x")
            )
        edited = messages.update(
            db_session, identity, message.id, MessageUpdate(content="Visit at 3pm")
        )
        assert edited.content == "Visit at 3pm"

    def test_company_admin_can_delete(
        self, db_session, team_project, identity, teammate, company_admin, identity_for
    ):
        message = _post(db_session, identity, team_project)
        with pytest.raises(AuthorizationError):
            messages.delete(db_session, identity_for(teammate), message.id)
        messages.delete(db_session, identity_for(company_admin), message.id)
        db_session.commit()
        assert db_session.get(Message, message.id) is None

    def test_activity_feed(self, db_session, team_project, identity):
        _post(db_session, identity, team_project)
        feed = activities.list_for_project(db_session, identity, team_project.id)
        assert [(a.action, a.entity_type) for a in feed] == [("posted", "message")]
