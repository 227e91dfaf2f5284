from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.models.invitation import InvitationStatus
from app.models.person import User, UserRole
from app.models.project import ActivityLog, ProjectMember, ProjectRole
from app.schemas.invitation import ConsultantInvitationCreate, InvitationCreate
from app.services.dispatch import app_link
from app.services.invitations import invitations
from app.services.outbox import pending_emails


@pytest.fixture()
def admin(company_admin, identity_for):
    return identity_for(company_admin)


@pytest.fixture()
def newcomer(db_session):
    u = User(email="dana@newhire.test", full_name="Dana Drafter")
    db_session.add(u)
    db_session.commit()
    db_session.refresh(u)
    return u


class TestInvite:
    def test_requires_company_admin(self, db_session, identity):
        with pytest.raises(AuthorizationError):
            invitations.invite(
                db_session, identity, InvitationCreate(email="dana@newhire.test")
            )

    def test_queues_email_with_link(self, db_session, admin):
        invitation, link, existing = invitations.invite(
            db_session, admin, InvitationCreate(email=" Dana@NewHire.test ")
        )
        assert invitation.email == "dana@newhire.test"
        assert invitation.role == UserRole.member
        assert invitation.status == InvitationStatus.pending
        assert invitation.token in link
        assert link.startswith(app_link("/register.html?token="))
        assert existing is False

        [email] = pending_emails(db_session)
        assert email["template"] == "invitation"
        assert email["recipient"] == "dana@newhire.test"
        assert email["data"]["company_name"] == "Studio North"
        assert email["data"]["inviter_name"] == "Ada Admin"
        assert email["data"]["invite_link"] == link

    def test_logs_activity(self, db_session, admin, project):
        invitation, _, _ = invitations.invite(
            db_session,
            admin,
            InvitationCreate(email="dana@newhire.test", project_id=project.id),
        )
        assert invitation.project_role == ProjectRole.member
        entry = db_session.scalar(
            select(ActivityLog).where(ActivityLog.action == "invite_user")
        )
        assert entry.project_id == project.id
        assert entry.entity_id == str(invitation.id)
        assert entry.details == {"email": "dana@newhire.test", "role": "member"}

    def test_duplicate_pending_rejected(self, db_session, admin):
        payload = InvitationCreate(email="dana@newhire.test")
        invitations.invite(db_session, admin, payload)
        with pytest.raises(ConflictError):
            invitations.invite(db_session, admin, payload)

    def test_invalid_email_and_role(self, db_session, admin):
        with pytest.raises(ValidationError):
            invitations.invite(db_session, admin, InvitationCreate(email="not-an-email"))
        with pytest.raises(ValidationError):
            invitations.invite(
                db_session, admin, InvitationCreate(email="d@x.test", role="wizard")
            )

    def test_project_role_rules(self, db_session, admin, project):
        with pytest.raises(ValidationError):
            invitations.invite(
                db_session,
                admin,
                InvitationCreate(
                    email="d@x.test", project_id=project.id, project_role="owner"
                ),
            )
        with pytest.raises(ValidationError):
            invitations.invite(
                db_session,
                admin,
                InvitationCreate(
                    email="d@x.test",
                    role="client",
                    project_id=project.id,
                    project_role="manager",
                ),
            )
        with pytest.raises(ValidationError):
            invitations.invite(
                db_session, admin, InvitationCreate(email="d@x.test", project_role="member")
            )

    def test_other_company_project_denied(
        self, db_session, admin, other_company, outsider
    ):
        from app.models.project import Project

        foreign = Project(
            name="Harbor Pier", company_id=other_company.id, created_by=outsider.id
        )
        db_session.add(foreign)
        db_session.commit()
        with pytest.raises(AuthorizationError):
            invitations.invite(
                db_session,
                admin,
                InvitationCreate(email="d@x.test", project_id=foreign.id),
            )


class TestInviteConsultant:
    def test_project_manager_invites(self, db_session, identity, project, outsider):
        invitation, link, existing = invitations.invite_consultant(
            db_session,
            identity,
            ConsultantInvitationCreate(
                email=outsider.email,
                project_id=project.id,
                message="Structural review please",
            ),
        )
        assert invitation.role == UserRole.consultant
        assert invitation.project_role == ProjectRole.consultant
        assert invitation.company_id == project.company_id
        assert "/consultant-signup.html?token=" in link
        assert existing is True

        [email] = pending_emails(db_session)
        assert email["template"] == "consultant_invite"
        assert email["data"]["project_name"] == "Riverside Library"
        assert email["data"]["custom_message"] == "Structural review please"

        entry = db_session.scalar(
            select(ActivityLog).where(ActivityLog.action == "invite_consultant")
        )
        assert entry.entity_type == "project"
        assert entry.details["invitation_id"] == str(invitation.id)

    def test_non_manager_denied(
        self, db_session, project, teammate, identity_for
    ):
        db_session.add(
            ProjectMember(
                project_id=project.id, user_id=teammate.id, role=ProjectRole.member
            )
        )
        db_session.commit()
        with pytest.raises(AuthorizationError):
            invitations.invite_consultant(
                db_session,
                identity_for(teammate),
                ConsultantInvitationCreate(email="x@y.test", project_id=project.id),
            )
        assert pending_emails(db_session) == []

    def test_existing_member_rejected(self, db_session, identity, project, user):
        with pytest.raises(ConflictError):
            invitations.invite_consultant(
                db_session,
                identity,
                ConsultantInvitationCreate(email=user.email, project_id=project.id),
            )


class TestAccept:
    def test_joins_company_and_project(
        self, db_session, admin, project, newcomer, identity_for, company
    ):
        invitation, _, _ = invitations.invite(
            db_session,
            admin,
            InvitationCreate(email=newcomer.email, project_id=project.id),
        )
        db_session.commit()

        accepted = invitations.accept(
            db_session, identity_for(newcomer), invitation.token
        )
        db_session.commit()
        assert accepted.status == InvitationStatus.accepted
        assert accepted.accepted_by == newcomer.id
        db_session.refresh(newcomer)
        assert newcomer.company_id == company.id
        member = db_session.scalar(
            select(ProjectMember).where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id == newcomer.id,
            )
        )
        assert member.role == ProjectRole.member

    def test_consultant_keeps_own_company(
        self, db_session, identity, project, outsider, other_company, identity_for
    ):
        invitation, _, _ = invitations.invite_consultant(
            db_session,
            identity,
            ConsultantInvitationCreate(email=outsider.email, project_id=project.id),
        )
        db_session.commit()
        invitations.accept(db_session, identity_for(outsider), invitation.token)
        db_session.commit()
        db_session.refresh(outsider)
        assert outsider.company_id == other_company.id
        role = db_session.scalar(
            select(ProjectMember.role).where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id == outsider.id,
            )
        )
        assert role == ProjectRole.consultant

    def test_wrong_email_denied(self, db_session, admin, newcomer, identity):
        invitation, _, _ = invitations.invite(
            db_session, admin, InvitationCreate(email=newcomer.email)
        )
        with pytest.raises(AuthorizationError):
            invitations.accept(db_session, identity, invitation.token)

    def test_unknown_token(self, db_session, identity):
        with pytest.raises(NotFoundError):
            invitations.accept(db_session, identity, "no-such-token")

    def test_expired(self, db_session, admin, newcomer, identity_for):
        invitation, _, _ = invitations.invite(
            db_session, admin, InvitationCreate(email=newcomer.email)
        )
        invitation.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db_session.commit()
        with pytest.raises(ValidationError):
            invitations.accept(db_session, identity_for(newcomer), invitation.token)

    def test_cannot_accept_twice(self, db_session, admin, newcomer, identity_for):
        invitation, _, _ = invitations.invite(
            db_session, admin, InvitationCreate(email=newcomer.email)
        )
        invitations.accept(db_session, identity_for(newcomer), invitation.token)
        with pytest.raises(ValidationError):
            invitations.accept(db_session, identity_for(newcomer), invitation.token)

    def test_member_of_other_company_conflicts(
        self, db_session, admin, outsider, identity_for
    ):
        invitation, _, _ = invitations.invite(
            db_session, admin, InvitationCreate(email=outsider.email)
        )
        with pytest.raises(ConflictError):
            invitations.accept(db_session, identity_for(outsider), invitation.token)


class TestListAndRevoke:
    def test_list_company_only(self, db_session, admin, identity):
        invitations.invite(db_session, admin, InvitationCreate(email="a@x.test"))
        invitations.invite(db_session, admin, InvitationCreate(email="b@x.test"))
        db_session.commit()
        assert len(invitations.list(db_session, admin)) == 2
        assert invitations.list(db_session, admin, status="accepted") == []
        with pytest.raises(AuthorizationError):
            invitations.list(db_session, identity)

    def test_revoke(self, db_session, admin, identity, newcomer, identity_for):
        invitation, _, _ = invitations.invite(
            db_session, admin, InvitationCreate(email=newcomer.email)
        )
        with pytest.raises(AuthorizationError):
            invitations.revoke(db_session, identity, invitation.id)
        assert invitations.revoke(db_session, admin, invitation.id).status == (
            InvitationStatus.revoked
        )
        with pytest.raises(ValidationError):
            invitations.accept(db_session, identity_for(newcomer), invitation.token)
        with pytest.raises(ValidationError):
            invitations.revoke(db_session, admin, invitation.id)
