from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import EnumStr


# ---------------------------------------------------------------------------
# Project members
# ---------------------------------------------------------------------------


class InitialMember(BaseModel):
    user_id: UUID
    role: str = "member"


class ProjectMemberCreate(BaseModel):
    project_id: UUID
    user_id: UUID
    role: str = "member"
    permissions: dict[str, Any] | None = None


class ProjectMemberUpdate(BaseModel):
    role: str | None = None
    permissions: dict[str, Any] | None = None


class MemberUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str
    job_title: str | None = None
    profile_photo: str | None = None


class ProjectMemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    user_id: UUID
    role: EnumStr
    permissions: dict[str, Any] | None = None
    joined_at: datetime
    user: MemberUser | None = None


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    address: str | None = Field(default=None, max_length=500)
    discipline: str | None = Field(default=None, max_length=120)
    start_date: date | None = None
    deadline: date | None = None
    budget: float | None = Field(default=None, ge=0)
    members: list[InitialMember] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    address: str | None = Field(default=None, max_length=500)
    status: str | None = None
    discipline: str | None = Field(default=None, max_length=120)
    start_date: date | None = None
    deadline: date | None = None
    budget: float | None = Field(default=None, ge=0)


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    address: str | None = None
    discipline: str | None = None
    status: EnumStr
    start_date: date | None = None
    deadline: date | None = None
    budget: float | None = None
    company_id: UUID | None = None
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    my_role: str | None = None
    member_count: int | None = None
    overdue_tasks: int | None = None


class ProjectDetail(ProjectRead):
    members: list[ProjectMemberRead] = Field(default_factory=list)
    total_tasks: int = 0
    completed_tasks: int = 0
    document_count: int = 0
