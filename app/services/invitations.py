"""Invitations to join a company or a single project.

An invitation is a random token mailed as a link. Nothing is granted when it
is sent; the invitee signs in with the identity provider and accepts the
token, at which point the company role and any project membership apply.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.models.invitation import Invitation, InvitationStatus
from app.models.person import Company, User, UserRole
from app.models.project import Project, ProjectMember, ProjectRole
from app.schemas.invitation import ConsultantInvitationCreate, InvitationCreate
from app.services.access import Identity, is_company_admin, require_project_manager
from app.services.activity import log_activity
from app.services.common import coerce_enum, coerce_uuid
from app.services.dispatch import app_link
from app.services.outbox import queue_email

logger = logging.getLogger(__name__)

# Global roles that make the invitee part of the inviting company
_COMPANY_ROLES = {UserRole.admin, UserRole.member}
# Project roles open to invitees from outside the company
_EXTERNAL_PROJECT_ROLES = {ProjectRole.consultant, ProjectRole.client}

_DEFAULT_PROJECT_ROLE = {
    UserRole.admin: ProjectRole.admin,
    UserRole.member: ProjectRole.member,
    UserRole.consultant: ProjectRole.consultant,
    UserRole.client: ProjectRole.client,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _normalize_email(email: str) -> str:
    email = (email or "").strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError("A valid email address is required")
    return email


def _project_role(role: UserRole, requested: str | None) -> ProjectRole:
    if requested is not None:
        project_role = coerce_enum(ProjectRole, requested, "project_role")
    else:
        project_role = _DEFAULT_PROJECT_ROLE.get(role)
        if project_role is None:
            raise ValidationError("project_role is required for this role")
    if project_role == ProjectRole.owner:
        raise ValidationError("Project ownership cannot be granted by invitation")
    if role not in _COMPANY_ROLES and project_role not in _EXTERNAL_PROJECT_ROLES:
        raise ValidationError(
            "Invitees outside the company can only join as consultant or client"
        )
    return project_role


def is_expired(invitation: Invitation) -> bool:
    return _aware(invitation.expires_at) <= _now()


class Invitations:
    @staticmethod
    def get(db: Session, invitation_id) -> Invitation:
        invitation = db.get(Invitation, coerce_uuid(invitation_id))
        if not invitation:
            raise NotFoundError("Invitation not found")
        return invitation

    @staticmethod
    def _issue(
        db: Session,
        identity: Identity,
        email: str,
        role: UserRole,
        company_id,
        project: Project | None,
        project_role: ProjectRole | None,
        message: str | None = None,
    ) -> tuple[Invitation, bool]:
        pending = db.scalars(
            select(Invitation).where(
                Invitation.email == email,
                Invitation.company_id == company_id,
                Invitation.project_id == (project.id if project else None),
                Invitation.status == InvitationStatus.pending,
            )
        ).all()
        if any(not is_expired(i) for i in pending):
            raise ConflictError("An invitation is already pending for this email")

        existing_user = db.scalar(select(User).where(func.lower(User.email) == email))
        if existing_user is not None and project is not None:
            already_member = db.scalar(
                select(ProjectMember.id).where(
                    ProjectMember.project_id == project.id,
                    ProjectMember.user_id == existing_user.id,
                )
            )
            if already_member or existing_user.id == project.created_by:
                raise ConflictError("User is already a member of this project")

        invitation = Invitation(
            email=email,
            role=role,
            company_id=company_id,
            project_id=project.id if project else None,
            project_role=project_role,
            message=message,
            invited_by=identity.user_id,
            token=secrets.token_urlsafe(32),
            expires_at=_now() + timedelta(days=settings.invitation_ttl_days),
        )
        db.add(invitation)
        db.flush()
        return invitation, existing_user is not None

    @staticmethod
    def invite(
        db: Session, identity: Identity, payload: InvitationCreate
    ) -> tuple[Invitation, str, bool]:
        """Company admins invite anyone to the company, optionally onto a project."""
        if not is_company_admin(identity, identity.company_id):
            raise AuthorizationError("Only company admins can send invitations")
        email = _normalize_email(payload.email)
        role = coerce_enum(UserRole, payload.role, "role")
        project = None
        project_role = None
        if payload.project_id is not None:
            project, _ = require_project_manager(db, identity, payload.project_id)
            project_role = _project_role(role, payload.project_role)
        elif payload.project_role is not None:
            raise ValidationError("project_role requires project_id")

        invitation, existing_user = Invitations._issue(
            db, identity, email, role, identity.company_id, project, project_role
        )
        link = app_link(f"/register.html?token={invitation.token}")
        inviter = db.get(User, identity.user_id)
        company = db.get(Company, identity.company_id)
        queue_email(
            db,
            "invitation",
            email,
            {
                "inviter_name": inviter.full_name if inviter else "",
                "company_name": company.name if company else "",
                "role": role.value,
                "project_line": f" You will be added to {project.name}." if project else "",
                "invite_link": link,
                "expires_on": invitation.expires_at.date().isoformat(),
            },
        )
        log_activity(
            db, identity, project.id if project else None, "invite_user", "invitation",
            invitation.id, {"email": email, "role": role.value},
        )
        logger.info("Invited %s to company %s as %s", email, identity.company_id, role.value)
        return invitation, link, existing_user

    @staticmethod
    def invite_consultant(
        db: Session, identity: Identity, payload: ConsultantInvitationCreate
    ) -> tuple[Invitation, str, bool]:
        project, _ = require_project_manager(db, identity, payload.project_id)
        email = _normalize_email(payload.email)
        invitation, existing_user = Invitations._issue(
            db,
            identity,
            email,
            UserRole.consultant,
            project.company_id,
            project,
            ProjectRole.consultant,
            payload.message,
        )
        link = app_link(f"/consultant-signup.html?token={invitation.token}")
        inviter = db.get(User, identity.user_id)
        company = db.get(Company, project.company_id) if project.company_id else None
        queue_email(
            db,
            "consultant_invite",
            email,
            {
                "inviter_name": inviter.full_name if inviter else "",
                "company_name": company.name if company else "",
                "project_name": project.name,
                "project_description": project.description or "",
                "custom_message": payload.message or "",
                "invite_link": link,
            },
        )
        log_activity(
            db, identity, project.id, "invite_consultant", "project", project.id,
            {"email": email, "invitation_id": str(invitation.id)},
        )
        logger.info("Invited consultant %s to project %s", email, project.id)
        return invitation, link, existing_user

    @staticmethod
    def list(
        db: Session, identity: Identity, status: str | None = None
    ) -> list[Invitation]:
        if not is_company_admin(identity, identity.company_id):
            raise AuthorizationError("Only company admins can list invitations")
        stmt = select(Invitation).where(Invitation.company_id == identity.company_id)
        if status is not None:
            stmt = stmt.where(
                Invitation.status == coerce_enum(InvitationStatus, status, "status")
            )
        return list(db.scalars(stmt.order_by(Invitation.created_at.desc())).all())

    @staticmethod
    def revoke(db: Session, identity: Identity, invitation_id) -> Invitation:
        invitation = Invitations.get(db, invitation_id)
        if invitation.invited_by != identity.user_id and not is_company_admin(
            identity, invitation.company_id
        ):
            raise AuthorizationError("Only the inviter or a company admin can revoke")
        if invitation.status != InvitationStatus.pending:
            raise ValidationError(f"Invitation is already {invitation.status.value}")
        invitation.status = InvitationStatus.revoked
        db.flush()
        logger.info("Revoked invitation %s", invitation.id)
        return invitation

    @staticmethod
    def accept(db: Session, identity: Identity, token: str) -> Invitation:
        invitation = db.scalar(select(Invitation).where(Invitation.token == token))
        if not invitation:
            raise NotFoundError("Invitation not found")
        if invitation.status != InvitationStatus.pending:
            raise ValidationError(f"Invitation is {invitation.status.value}")
        if is_expired(invitation):
            raise ValidationError("Invitation has expired")
        user = db.get(User, identity.user_id)
        if user is None or user.email.strip().lower() != invitation.email:
            raise AuthorizationError("This invitation was sent to a different email")

        if invitation.role in _COMPANY_ROLES:
            if user.company_id not in (None, invitation.company_id):
                raise ConflictError("Your account already belongs to another company")
            if user.company_id is None:
                user.company_id = invitation.company_id
                user.role = invitation.role
        elif user.company_id is None:
            user.role = invitation.role

        if invitation.project_id is not None:
            member = db.scalar(
                select(ProjectMember).where(
                    ProjectMember.project_id == invitation.project_id,
                    ProjectMember.user_id == user.id,
                )
            )
            if member is None:
                member = ProjectMember(
                    project_id=invitation.project_id,
                    user_id=user.id,
                    role=invitation.project_role,
                )
                db.add(member)
                db.flush()
            joined = Identity(user_id=user.id, role=user.role, company_id=user.company_id)
            log_activity(
                db, joined, invitation.project_id, "invitation_accepted",
                "project_member", member.id, {"invitation_id": str(invitation.id)},
            )

        invitation.status = InvitationStatus.accepted
        invitation.accepted_at = _now()
        invitation.accepted_by = user.id
        db.flush()
        logger.info("User %s accepted invitation %s", user.id, invitation.id)
        return invitation


invitations = Invitations()
