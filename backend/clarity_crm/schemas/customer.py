"""Customer Schemas.

Invariants:
    - name >= 2 chars; email valid or empty; value > 0 when given
    - A customer links to an existing company (company_id) or creates one inline
      (new_company), never both
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from clarity_crm.core.domain_types import CustomerStatus, LeadSource
from clarity_crm.schemas.common import (
    CompanySummary, ORMModel, PartialUpdate, UserSummary, blank_to_none,
)
from clarity_crm.schemas.company import CompanyCreate

_OPTIONAL_TEXT = ("email", "phone", "company", "position", "notes")


class CustomerCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=200)
    position: str | None = Field(None, max_length=100)
    status: CustomerStatus = CustomerStatus.LEAD
    source: LeadSource | None = None
    value: float | None = Field(None, gt=0)
    notes: str | None = Field(None, max_length=10_000)
    assigned_to: UUID | None = None
    company_id: UUID | None = None
    new_company: CompanyCreate | None = None

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def blank_optional_text(cls, v):
        return blank_to_none(v)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def one_company_source(self):
        if self.company_id and self.new_company:
            raise ValueError("Provide either company_id or new_company, not both")
        return self


class CustomerUpdate(PartialUpdate):
    NON_NULLABLE = ("name", "status")

    name: str | None = Field(None, min_length=2, max_length=200)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=200)
    position: str | None = Field(None, max_length=100)
    status: CustomerStatus | None = None
    source: LeadSource | None = None
    value: float | None = Field(None, gt=0)
    notes: str | None = Field(None, max_length=10_000)
    assigned_to: UUID | None = None
    company_id: UUID | None = None

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def blank_optional_text(cls, v):
        return blank_to_none(v)


class CustomerResponse(ORMModel):
    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    position: str | None = None
    status: CustomerStatus
    source: LeadSource | None = None
    value: float | None = None
    notes: str | None = None
    created_by: UUID | None = None
    assigned_to: UUID | None = None
    company_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    creator: UserSummary | None = None
    assignee: UserSummary | None = None
    linked_company: CompanySummary | None = None


class CustomerListItem(CustomerResponse):
    counts: dict[str, int]
