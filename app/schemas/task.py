from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import EnumStr


class TaskCreate(BaseModel):
    project_id: UUID
    name: str = Field(min_length=1, max_length=500)
    description: str | None = None
    assigned_to: UUID | None = None
    due_date: date | None = None
    priority: str = "medium"
    status: str = "pending"


class TaskUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    assigned_to: UUID | None = None
    due_date: date | None = None
    priority: str | None = None
    status: str | None = None


class SubtaskCreate(BaseModel):
    task_id: UUID
    name: str = Field(min_length=1, max_length=500)
    due_date: date | None = None


class SubtaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    task_id: UUID
    name: str
    due_date: date | None = None
    completed: bool
    created_at: datetime


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    name: str
    description: str | None = None
    assigned_to: UUID | None = None
    due_date: date | None = None
    priority: EnumStr
    status: EnumStr
    created_by: UUID
    created_at: datetime
    updated_at: datetime


class TaskDetail(TaskRead):
    subtasks: list[SubtaskRead] = Field(default_factory=list)
