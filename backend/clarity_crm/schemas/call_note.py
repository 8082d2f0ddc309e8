"""Call Note Schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clarity_crm.schemas.common import ORMModel, PartialUpdate, UserSummary, blank_to_none

_OPTIONAL_TEXT = ("client_company", "phone_number", "summary", "outcome")


class CallNoteCreate(BaseModel):
    client_name: str = Field(min_length=1, max_length=200)
    client_company: str | None = Field(None, max_length=200)
    phone_number: str | None = Field(None, max_length=50)
    notes: str = Field(min_length=1, max_length=20_000)
    summary: str | None = Field(None, max_length=5000)
    outcome: str | None = Field(None, max_length=200)
    follow_up_date: datetime | None = None
    user_id: UUID | None = None
    customer_id: UUID | None = None

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def blank_optional_text(cls, v):
        return blank_to_none(v)


class CallNoteUpdate(PartialUpdate):
    NON_NULLABLE = ("client_name", "notes")

    client_name: str | None = Field(None, min_length=1, max_length=200)
    client_company: str | None = Field(None, max_length=200)
    phone_number: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, min_length=1, max_length=20_000)
    summary: str | None = Field(None, max_length=5000)
    ai_summary: str | None = Field(None, max_length=5000)
    outcome: str | None = Field(None, max_length=200)
    follow_up_date: datetime | None = None
    customer_id: UUID | None = None


class CallNoteResponse(ORMModel):
    id: UUID
    client_name: str
    client_company: str | None = None
    phone_number: str | None = None
    notes: str
    summary: str | None = None
    ai_summary: str | None = None
    outcome: str | None = None
    follow_up_date: datetime | None = None
    user_id: UUID
    customer_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    user: UserSummary | None = None
