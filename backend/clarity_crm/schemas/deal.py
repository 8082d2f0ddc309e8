"""Deal Schemas.

Invariants:
    - value >= 0, probability 0..100
    - probability defaults to the stage's suggested probability when omitted
    - owner defaults to the caller; creator is always the caller
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clarity_crm.core.domain_types import DealStage, LeadSource
from clarity_crm.schemas.common import (
    CompanySummary, CustomerSummary, ORMModel, PartialUpdate, UserSummary, blank_to_none,
)


class DealCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    value: float = Field(ge=0)
    probability: int | None = Field(None, ge=0, le=100)
    stage: DealStage = DealStage.PROSPECTING
    source: LeadSource | None = None
    customer_id: UUID | None = None
    company_id: UUID | None = None
    owner_id: UUID | None = None
    expected_close_date: datetime | None = None

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return blank_to_none(v)


class DealUpdate(PartialUpdate):
    NON_NULLABLE = ("name", "value", "probability", "stage")

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    value: float | None = Field(None, ge=0)
    probability: int | None = Field(None, ge=0, le=100)
    stage: DealStage | None = None
    source: LeadSource | None = None
    customer_id: UUID | None = None
    company_id: UUID | None = None
    owner_id: UUID | None = None
    expected_close_date: datetime | None = None
    actual_close_date: datetime | None = None
    lost_reason: str | None = Field(None, max_length=2000)


class DealResponse(ORMModel):
    id: UUID
    name: str
    description: str | None = None
    value: float
    probability: int
    stage: DealStage
    source: LeadSource | None = None
    customer_id: UUID | None = None
    company_id: UUID | None = None
    owner_id: UUID | None = None
    created_by: UUID | None = None
    expected_close_date: datetime | None = None
    actual_close_date: datetime | None = None
    lost_reason: str | None = None
    stage_changed_at: datetime
    days_in_stage: int
    total_duration: int | None = None
    created_at: datetime
    updated_at: datetime
    customer: CustomerSummary | None = None
    company: CompanySummary | None = None
    owner: UserSummary | None = None


class DealNoteCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10_000)


class DealNoteResponse(ORMModel):
    id: UUID
    deal_id: UUID
    user_id: UUID | None = None
    content: str
    created_at: datetime
    user: UserSummary | None = None
