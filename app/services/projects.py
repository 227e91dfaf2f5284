from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.models.document import Document
from app.models.notification import NotificationType
from app.models.person import User, UserRole
from app.models.project import (
    Project,
    ProjectMember,
    ProjectRole,
    ProjectStatus,
    Task,
    TaskStatus,
)
from app.schemas.project import (
    ProjectCreate,
    ProjectDetail,
    ProjectMemberCreate,
    ProjectMemberRead,
    ProjectMemberUpdate,
    ProjectRead,
    ProjectUpdate,
)
from app.services.access import (
    MANAGE_ROLES,
    Identity,
    ProjectFacts,
    evaluate_access,
    require_project_access,
    require_project_manager,
    visible_project_ids,
)
from app.services.activity import log_activity
from app.services.common import coerce_enum, coerce_uuid, partial_update
from app.services.dispatch import dispatcher

logger = logging.getLogger(__name__)

_CREATOR_ROLES = {UserRole.admin, UserRole.member}
# Roles that may be granted to users outside the project's company
_EXTERNAL_ROLES = {ProjectRole.consultant, ProjectRole.client}


def _notify_added(db: Session, project: Project, user_id, role: ProjectRole) -> None:
    dispatcher.notify(
        db,
        [user_id],
        NotificationType.permission_change,
        title="Added to project",
        message=f"You were added to {project.name} as {role.value}",
        link=f"/projects/{project.id}",
        email_data={"project_name": project.name, "role": role.value},
    )


def _check_member_company(project: Project, user: User, role: ProjectRole) -> None:
    if role in _EXTERNAL_ROLES or project.company_id is None:
        return
    if user.company_id != project.company_id:
        raise ValidationError(
            "Users from another company can only join as consultant or client"
        )


def _check_creator_role(project: Project, user_id, role: ProjectRole) -> None:
    if user_id == project.created_by and role not in MANAGE_ROLES:
        raise ValidationError("The project creator must keep a managing role")


def _summaries(db: Session, identity: Identity, projects) -> list[ProjectRead]:
    ids = [p.id for p in projects]
    if not ids:
        return []
    my_roles = dict(
        db.execute(
            select(ProjectMember.project_id, ProjectMember.role).where(
                ProjectMember.user_id == identity.user_id,
                ProjectMember.project_id.in_(ids),
            )
        ).all()
    )
    member_counts = dict(
        db.execute(
            select(ProjectMember.project_id, func.count(ProjectMember.id))
            .where(ProjectMember.project_id.in_(ids))
            .group_by(ProjectMember.project_id)
        ).all()
    )
    overdue = dict(
        db.execute(
            select(Task.project_id, func.count(Task.id))
            .where(
                Task.project_id.in_(ids),
                or_(
                    Task.status == TaskStatus.overdue,
                    (Task.status != TaskStatus.completed)
                    & (Task.due_date < date.today()),
                ),
            )
            .group_by(Task.project_id)
        ).all()
    )
    rows = []
    for project in projects:
        access = evaluate_access(
            identity,
            ProjectFacts(project.id, project.company_id, project.created_by),
            my_roles.get(project.id),
        )
        role = access.effective_role
        rows.append(
            ProjectRead.model_validate(project).model_copy(
                update={
                    "my_role": role.value if role else None,
                    "member_count": member_counts.get(project.id, 0),
                    "overdue_tasks": overdue.get(project.id, 0),
                }
            )
        )
    return rows


class Projects:
    @staticmethod
    def create(db: Session, identity: Identity, payload: ProjectCreate) -> Project:
        if identity.role not in _CREATOR_ROLES:
            raise AuthorizationError("Only company admins and members can create projects")

        initial: dict = {}
        for member in payload.members:
            if member.user_id == identity.user_id or member.user_id in initial:
                continue
            user = db.get(User, member.user_id)
            if not user:
                raise NotFoundError(f"User {member.user_id} not found")
            initial[member.user_id] = (user, coerce_enum(ProjectRole, member.role, "role"))

        project = Project(
            **payload.model_dump(exclude={"members"}),
            company_id=identity.company_id,
            created_by=identity.user_id,
        )
        db.add(project)
        db.flush()
        for user_id, (user, role) in initial.items():
            _check_member_company(project, user, role)
            db.add(ProjectMember(project_id=project.id, user_id=user_id, role=role))
        log_activity(
            db, identity, project.id, "created", "project", project.id,
            {"name": project.name},
        )
        db.flush()
        for user_id, (_, role) in initial.items():
            _notify_added(db, project, user_id, role)
        logger.info("Created project %s", project.id)
        return project

    @staticmethod
    def get(db: Session, identity: Identity, project_id) -> ProjectDetail:
        project, access = require_project_access(db, identity, project_id)
        members = db.scalars(
            select(ProjectMember)
            .options(selectinload(ProjectMember.user))
            .where(ProjectMember.project_id == project.id)
            .order_by(ProjectMember.joined_at)
        ).all()
        total_tasks = db.scalar(
            select(func.count(Task.id)).where(Task.project_id == project.id)
        )
        completed_tasks = db.scalar(
            select(func.count(Task.id)).where(
                Task.project_id == project.id, Task.status == TaskStatus.completed
            )
        )
        document_count = db.scalar(
            select(func.count(Document.id)).where(
                Document.project_id == project.id, Document.is_latest.is_(True)
            )
        )
        summary = _summaries(db, identity, [project])[0]
        return ProjectDetail(
            **summary.model_dump(),
            members=[ProjectMemberRead.model_validate(m) for m in members],
            total_tasks=total_tasks or 0,
            completed_tasks=completed_tasks or 0,
            document_count=document_count or 0,
        )

    @staticmethod
    def list(db: Session, identity: Identity) -> list[ProjectRead]:
        stmt = (
            select(Project)
            .where(Project.id.in_(visible_project_ids(identity)))
            .order_by(Project.created_at.desc())
        )
        return _summaries(db, identity, db.scalars(stmt).all())

    @staticmethod
    def update(
        db: Session, identity: Identity, project_id, payload: ProjectUpdate
    ) -> Project:
        project, _ = require_project_manager(db, identity, project_id)
        data = partial_update(payload)
        if "name" in data and not data["name"]:
            raise ValidationError("Project name cannot be empty")
        if "status" in data:
            data["status"] = coerce_enum(ProjectStatus, data["status"], "status")
        for key, value in data.items():
            setattr(project, key, value)
        log_activity(
            db, identity, project.id, "updated", "project", project.id,
            {"fields": sorted(data)},
        )
        db.flush()
        logger.info("Updated project %s", project.id)
        return project

    @staticmethod
    def delete(db: Session, identity: Identity, project_id) -> None:
        project, _ = require_project_manager(db, identity, project_id)
        log_activity(
            db, identity, project.id, "deleted", "project", project.id,
            {"name": project.name},
        )
        db.delete(project)
        db.flush()
        logger.info("Deleted project %s", project.id)


class ProjectMembers:
    @staticmethod
    def get(db: Session, member_id) -> ProjectMember:
        member = db.get(ProjectMember, coerce_uuid(member_id))
        if not member:
            raise NotFoundError("Project member not found")
        return member

    @staticmethod
    def list(db: Session, identity: Identity, project_id) -> list[ProjectMember]:
        project, _ = require_project_access(db, identity, project_id)
        stmt = (
            select(ProjectMember)
            .options(selectinload(ProjectMember.user))
            .where(ProjectMember.project_id == project.id)
            .order_by(ProjectMember.joined_at)
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def create(
        db: Session, identity: Identity, payload: ProjectMemberCreate
    ) -> ProjectMember:
        project, _ = require_project_manager(db, identity, payload.project_id)
        user = db.get(User, payload.user_id)
        if not user or not user.is_active:
            raise NotFoundError("User not found")
        role = coerce_enum(ProjectRole, payload.role, "role")
        _check_member_company(project, user, role)
        _check_creator_role(project, user.id, role)
        existing = db.scalar(
            select(ProjectMember.id).where(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id == user.id,
            )
        )
        if existing:
            raise ConflictError("User is already a member of this project")

        member = ProjectMember(
            project_id=project.id,
            user_id=user.id,
            role=role,
            permissions=payload.permissions,
        )
        db.add(member)
        try:
            db.flush()
        except IntegrityError:
            raise ConflictError("User is already a member of this project")
        log_activity(
            db, identity, project.id, "member_added", "project_member", member.id,
            {"user_id": str(user.id), "role": role.value},
        )
        _notify_added(db, project, user.id, role)
        logger.info("Added user %s to project %s as %s", user.id, project.id, role.value)
        return member

    @staticmethod
    def update(
        db: Session, identity: Identity, member_id, payload: ProjectMemberUpdate
    ) -> ProjectMember:
        member = ProjectMembers.get(db, member_id)
        project, _ = require_project_manager(db, identity, member.project_id)
        data = partial_update(payload)
        if "role" in data:
            if data["role"] is None:
                raise ValidationError("role cannot be empty")
            data["role"] = coerce_enum(ProjectRole, data["role"], "role")
            _check_member_company(project, member.user, data["role"])
            _check_creator_role(project, member.user_id, data["role"])
        for key, value in data.items():
            setattr(member, key, value)
        log_activity(
            db, identity, project.id, "member_updated", "project_member", member.id,
            {"fields": sorted(data)},
        )
        db.flush()
        logger.info("Updated project member %s", member.id)
        return member

    @staticmethod
    def delete(db: Session, identity: Identity, member_id) -> None:
        member = ProjectMembers.get(db, member_id)
        project, _ = require_project_manager(db, identity, member.project_id)
        if member.user_id == project.created_by:
            raise ValidationError("The project creator cannot be removed")
        log_activity(
            db, identity, project.id, "member_removed", "project_member", member.id,
            {"user_id": str(member.user_id)},
        )
        db.delete(member)
        db.flush()
        logger.info("Removed project member %s", member.id)


projects = Projects()
project_members = ProjectMembers()
