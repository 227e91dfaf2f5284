from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class DocumentCreate(BaseModel):
    project_id: UUID
    name: str = Field(min_length=1, max_length=500)
    file_type: str = Field(min_length=1, max_length=120)
    file_size: int = Field(default=0, ge=0)
    storage_key: str | None = Field(default=None, max_length=1024)
    discipline: str | None = Field(default=None, max_length=120)
    parent_document_id: UUID | None = None


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    name: str
    file_type: str
    file_size: int
    file_path: str | None = None
    storage_key: str | None = None
    discipline: str | None = None
    version: int
    is_latest: bool
    parent_document_id: UUID | None = None
    uploaded_by: UUID
    created_at: datetime
    version_count: int | None = None


class AccessLogCreate(BaseModel):
    action: str = Field(default="view", pattern="^(view|download)$")


class AccessLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    user_id: UUID
    action: str
    created_at: datetime


class DocumentHistory(BaseModel):
    document: DocumentRead
    versions: list[DocumentRead]
    access_log: list[AccessLogRead]


class UploadURLRequest(BaseModel):
    project_id: UUID
    file_name: str = Field(min_length=1, max_length=500)
    mime_type: str = Field(min_length=1, max_length=255)


class UploadURLResponse(BaseModel):
    upload_url: str
    storage_key: str
