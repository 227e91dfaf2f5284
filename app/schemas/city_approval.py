from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import EnumStr


class CityApprovalCreate(BaseModel):
    project_id: UUID
    submittal_name: str = Field(min_length=1, max_length=500)
    submittal_type: str | None = Field(default=None, max_length=120)
    city_jurisdiction: str | None = Field(default=None, max_length=255)
    plan_check_number: str | None = Field(default=None, max_length=120)
    submission_date: date | None = None
    deadline: date | None = None
    city_official: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    document_ids: list[UUID] | None = None


class CityApprovalUpdate(BaseModel):
    submittal_name: str | None = Field(default=None, min_length=1, max_length=500)
    submittal_type: str | None = Field(default=None, max_length=120)
    city_jurisdiction: str | None = Field(default=None, max_length=255)
    plan_check_number: str | None = Field(default=None, max_length=120)
    submission_date: date | None = None
    deadline: date | None = None
    city_official: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    document_ids: list[UUID] | None = None


class ApprovalStatusUpdate(BaseModel):
    status: str
    city_official: str | None = None
    notes: str | None = None


class CorrectionCreate(BaseModel):
    approval_id: UUID
    description: str = Field(min_length=1)
    assigned_to: UUID | None = None
    due_date: date | None = None


class CorrectionUpdate(BaseModel):
    status: str


class CorrectionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    approval_id: UUID
    description: str
    assigned_to: UUID | None = None
    due_date: date | None = None
    status: EnumStr
    created_at: datetime
    updated_at: datetime


class CityApprovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    submittal_name: str
    submittal_type: str | None = None
    city_jurisdiction: str | None = None
    plan_check_number: str | None = None
    submission_date: date | None = None
    deadline: date | None = None
    city_official: str | None = None
    notes: str | None = None
    document_ids: list[UUID] | None = None
    status: EnumStr
    review_date: datetime | None = None
    approval_date: datetime | None = None
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    pending_corrections: int | None = None


class CityApprovalDetail(CityApprovalRead):
    corrections: list[CorrectionRead] = Field(default_factory=list)
