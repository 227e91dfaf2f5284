from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import EnumStr


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    type: EnumStr
    title: str
    message: str
    link: str | None = None
    is_read: bool
    read_at: datetime | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_")
    created_at: datetime


class UnreadCountResponse(BaseModel):
    count: int


class MarkedResponse(BaseModel):
    marked: int


class NotificationPreferenceUpdate(BaseModel):
    email_enabled: bool | None = None
    in_app_enabled: bool | None = None
    task_assigned: bool | None = None
    document_updates: bool | None = None
    comments_mentions: bool | None = None
    permission_changes: bool | None = None
    approval_updates: bool | None = None


class NotificationPreferenceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email_enabled: bool = True
    in_app_enabled: bool = True
    task_assigned: bool = True
    document_updates: bool = True
    comments_mentions: bool = True
    permission_changes: bool = True
    approval_updates: bool = True
