from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    project_id: UUID
    content: str = Field(min_length=1)
    parent_id: UUID | None = None
    mentions: list[UUID] = Field(default_factory=list)


class MessageUpdate(BaseModel):
    content: str = Field(min_length=1)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    parent_id: UUID | None = None
    sender_id: UUID
    content: str
    mentions: list[UUID] | None = None
    created_at: datetime
    updated_at: datetime


class MessageThread(MessageRead):
    replies: list[MessageRead] = Field(default_factory=list)


class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID | None = None
    user_id: UUID
    action: str
    entity_type: str
    entity_id: str
    details: dict[str, Any] | None = None
    created_at: datetime
