from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import EnumStr


class InvitationCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    role: str = "member"
    project_id: UUID | None = None
    project_role: str | None = None


class ConsultantInvitationCreate(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    project_id: UUID
    message: str | None = Field(default=None, max_length=2000)


class InvitationAccept(BaseModel):
    token: str = Field(min_length=1, max_length=128)


class InvitationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: EnumStr
    company_id: UUID | None = None
    project_id: UUID | None = None
    project_role: EnumStr | None = None
    invited_by: UUID
    status: EnumStr
    expires_at: datetime
    accepted_at: datetime | None = None
    created_at: datetime


class InvitationSent(InvitationRead):
    invite_link: str
    existing_user: bool = False
