"""Activity Schemas - logged calls, meetings, emails and notes."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clarity_crm.core.domain_types import ActivityType
from clarity_crm.schemas.common import ORMModel, PartialUpdate, UserSummary, blank_to_none


class ActivityCreate(BaseModel):
    type: ActivityType
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    duration: int | None = Field(None, gt=0)
    estimated_duration: int | None = Field(None, gt=0)
    user_id: UUID | None = None
    customer_id: UUID | None = None
    company_id: UUID | None = None
    deal_id: UUID | None = None
    task_id: UUID | None = None

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return blank_to_none(v)


class ActivityUpdate(PartialUpdate):
    NON_NULLABLE = ("type", "title")

    type: ActivityType | None = None
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    duration: int | None = Field(None, gt=0)
    estimated_duration: int | None = Field(None, gt=0)


class ActivityResponse(ORMModel):
    id: UUID
    type: ActivityType
    title: str
    description: str | None = None
    duration: int | None = None
    estimated_duration: int | None = None
    user_id: UUID
    customer_id: UUID | None = None
    company_id: UUID | None = None
    deal_id: UUID | None = None
    task_id: UUID | None = None
    created_at: datetime
    user: UserSummary | None = None
