from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.common import EnumStr


class ProjectHit(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    address: str | None = None
    status: EnumStr


class TaskHit(BaseModel):
    id: UUID
    name: str
    status: EnumStr
    project_id: UUID
    project_name: str


class DocumentHit(BaseModel):
    id: UUID
    name: str
    version: int
    project_id: UUID
    project_name: str


class UserHit(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str
    job_title: str | None = None
    role: EnumStr


class SearchResults(BaseModel):
    projects: list[ProjectHit] = []
    tasks: list[TaskHit] = []
    documents: list[DocumentHit] = []
    users: list[UserHit] = []

    @property
    def total(self) -> int:
        return (
            len(self.projects) + len(self.tasks) + len(self.documents) + len(self.users)
        )
