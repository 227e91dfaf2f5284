from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.common import envelope
from app.schemas.task import (
    SubtaskCreate,
    SubtaskRead,
    TaskCreate,
    TaskDetail,
    TaskUpdate,
)
from app.services.access import Identity
from app.services.tasks import subtasks, tasks

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
def get_tasks(
    task_id: str | None = Query(default=None, alias="id"),
    project_id: str | None = None,
    assigned_to: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    if task_id:
        return envelope(TaskDetail.model_validate(tasks.get(db, identity, task_id)))
    rows = [
        TaskDetail.model_validate(t)
        for t in tasks.list(db, identity, project_id, assigned_to, status_filter)
    ]
    return envelope(rows, count=len(rows))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    task = tasks.create(db, identity, payload)
    return envelope(TaskDetail.model_validate(task), message="Task created")


@router.put("")
def update_task(
    payload: TaskUpdate,
    task_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    task = tasks.update(db, identity, task_id, payload)
    return envelope(TaskDetail.model_validate(task), message="Task updated")


@router.delete("")
def delete_task(
    task_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    tasks.delete(db, identity, task_id)
    return envelope(message="Task deleted")


# ------------------------------------------------------------------
# Subtasks
# ------------------------------------------------------------------


@router.post("/subtasks", status_code=status.HTTP_201_CREATED)
def create_subtask(
    payload: SubtaskCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    subtask = subtasks.create(db, identity, payload)
    return envelope(SubtaskRead.model_validate(subtask), message="Subtask created")


@router.put("/subtasks/toggle")
def toggle_subtask(
    subtask_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    subtask = subtasks.toggle(db, identity, subtask_id)
    return envelope(SubtaskRead.model_validate(subtask))


@router.delete("/subtasks")
def delete_subtask(
    subtask_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    subtasks.delete(db, identity, subtask_id)
    return envelope(message="Subtask deleted")
