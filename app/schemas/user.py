from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import EnumStr


class UserProfileUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    job_title: str | None = Field(default=None, max_length=255)
    discipline: str | None = Field(default=None, max_length=120)
    profile_photo: str | None = Field(default=None, max_length=1024)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    job_title: str | None = None
    discipline: str | None = None
    profile_photo: str | None = None
    role: EnumStr
    company_id: UUID | None = None
    is_active: bool
    created_at: datetime
