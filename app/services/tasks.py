from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.errors import NotFoundError, ValidationError
from app.models.notification import NotificationType
from app.models.project import Project, Subtask, Task, TaskPriority, TaskStatus
from app.schemas.task import SubtaskCreate, TaskCreate, TaskUpdate
from app.services.access import (
    Identity,
    require_project_access,
    require_project_assignee,
    visible_project_ids,
)
from app.services.activity import log_activity
from app.services.common import coerce_enum, coerce_uuid, partial_update
from app.services.dispatch import dispatcher

logger = logging.getLogger(__name__)


def _notify_assigned(db: Session, identity: Identity, task: Task, project: Project):
    dispatcher.notify(
        db,
        [task.assigned_to],
        NotificationType.task_assigned,
        title="New task assigned",
        message=f'You were assigned "{task.name}" on {project.name}',
        link=f"/projects/{project.id}/tasks",
        email_data={"task_name": task.name, "project_name": project.name},
        exclude=identity.user_id,
    )


class Tasks:
    @staticmethod
    def create(db: Session, identity: Identity, payload: TaskCreate) -> Task:
        project, _ = require_project_access(db, identity, payload.project_id)
        data = payload.model_dump()
        data["priority"] = coerce_enum(TaskPriority, data["priority"], "priority")
        data["status"] = coerce_enum(TaskStatus, data["status"], "status")
        if payload.assigned_to:
            require_project_assignee(db, project, payload.assigned_to)

        task = Task(**data, created_by=identity.user_id)
        db.add(task)
        db.flush()
        log_activity(db, identity, project.id, "created", "task", task.id, {"name": task.name})
        if task.assigned_to:
            _notify_assigned(db, identity, task, project)
        logger.info("Created task %s in project %s", task.id, project.id)
        return task

    @staticmethod
    def get(db: Session, identity: Identity, task_id) -> Task:
        task = db.get(Task, coerce_uuid(task_id))
        if not task:
            raise NotFoundError("Task not found")
        require_project_access(db, identity, task.project_id)
        return task

    @staticmethod
    def list(
        db: Session,
        identity: Identity,
        project_id=None,
        assigned_to: str | None = None,
        status: str | None = None,
    ) -> list[Task]:
        stmt = select(Task).options(selectinload(Task.subtasks))
        if project_id is not None:
            project, _ = require_project_access(db, identity, project_id)
            stmt = stmt.where(Task.project_id == project.id)
        else:
            stmt = stmt.where(Task.project_id.in_(visible_project_ids(identity)))
        if assigned_to == "me":
            stmt = stmt.where(Task.assigned_to == identity.user_id)
        elif assigned_to is not None:
            stmt = stmt.where(Task.assigned_to == coerce_uuid(assigned_to))
        if status is not None:
            stmt = stmt.where(Task.status == coerce_enum(TaskStatus, status, "status"))
        stmt = stmt.order_by(Task.due_date.asc().nulls_last(), Task.created_at.desc())
        return list(db.scalars(stmt).all())

    @staticmethod
    def update(db: Session, identity: Identity, task_id, payload: TaskUpdate) -> Task:
        task = Tasks.get(db, identity, task_id)
        data = partial_update(payload)
        if "name" in data and not data["name"]:
            raise ValidationError("Task name cannot be empty")
        for field, enum_cls in (("priority", TaskPriority), ("status", TaskStatus)):
            if field in data:
                data[field] = coerce_enum(enum_cls, data[field], field)
        reassigned = (
            "assigned_to" in data
            and data["assigned_to"] is not None
            and data["assigned_to"] != task.assigned_to
        )
        project = db.get(Project, task.project_id)
        if reassigned:
            require_project_assignee(db, project, data["assigned_to"])

        for key, value in data.items():
            setattr(task, key, value)
        log_activity(
            db, identity, task.project_id, "updated", "task", task.id,
            {"fields": sorted(data)},
        )
        db.flush()
        if reassigned:
            _notify_assigned(db, identity, task, project)
        logger.info("Updated task %s", task.id)
        return task

    @staticmethod
    def delete(db: Session, identity: Identity, task_id) -> None:
        task = Tasks.get(db, identity, task_id)
        log_activity(
            db, identity, task.project_id, "deleted", "task", task.id, {"name": task.name}
        )
        db.delete(task)
        db.flush()
        logger.info("Deleted task %s", task.id)


class Subtasks:
    @staticmethod
    def _get(db: Session, identity: Identity, subtask_id) -> Subtask:
        subtask = db.get(Subtask, coerce_uuid(subtask_id))
        if not subtask:
            raise NotFoundError("Subtask not found")
        require_project_access(db, identity, subtask.task.project_id)
        return subtask

    @staticmethod
    def create(db: Session, identity: Identity, payload: SubtaskCreate) -> Subtask:
        task = Tasks.get(db, identity, payload.task_id)
        subtask = Subtask(task_id=task.id, name=payload.name, due_date=payload.due_date)
        db.add(subtask)
        db.flush()
        logger.info("Created subtask %s on task %s", subtask.id, task.id)
        return subtask

    @staticmethod
    def toggle(db: Session, identity: Identity, subtask_id) -> Subtask:
        subtask = Subtasks._get(db, identity, subtask_id)
        subtask.completed = not subtask.completed
        db.flush()
        logger.info("Toggled subtask %s to %s", subtask.id, subtask.completed)
        return subtask

    @staticmethod
    def delete(db: Session, identity: Identity, subtask_id) -> None:
        subtask = Subtasks._get(db, identity, subtask_id)
        db.delete(subtask)
        db.flush()
        logger.info("Deleted subtask %s", subtask.id)


tasks = Tasks()
subtasks = Subtasks()
