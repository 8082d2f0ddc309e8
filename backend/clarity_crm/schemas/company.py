"""Company Schemas.

Invariants:
    - name >= 2 chars; founded_year between 1800 and the current year
    - website must be an http(s) URL, email a valid address; "" means not set
"""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator

from clarity_crm.core.domain_types import CompanySize, CompanyStatus, Industry
from clarity_crm.schemas.common import ORMModel, PartialUpdate, UserSummary, blank_to_none

MIN_FOUNDED_YEAR = 1800

_OPTIONAL_TEXT = (
    "website", "address", "city", "country", "phone", "email", "description",
)


def _check_founded_year(v: int | None) -> int | None:
    if v is None:
        return v
    current = datetime.now(timezone.utc).year
    if not MIN_FOUNDED_YEAR <= v <= current:
        raise ValueError(f"founded_year must be between {MIN_FOUNDED_YEAR} and {current}")
    return v


class CompanyCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    industry: Industry | None = None
    size: CompanySize | None = None
    revenue: float | None = Field(None, ge=0)
    employees: int | None = Field(None, ge=0)
    website: HttpUrl | None = None
    address: str | None = Field(None, max_length=300)
    city: str | None = Field(None, max_length=100)
    country: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=50)
    email: EmailStr | None = None
    description: str | None = Field(None, max_length=5000)
    status: CompanyStatus = CompanyStatus.PROSPECT
    founded_year: int | None = None
    assigned_to: UUID | None = None

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def blank_optional_text(cls, v):
        return blank_to_none(v)

    @field_validator("founded_year")
    @classmethod
    def founded_year_range(cls, v):
        return _check_founded_year(v)

    def to_columns(self) -> dict:
        data = self.model_dump()
        if data["website"] is not None:
            data["website"] = str(data["website"])
        return data


class CompanyUpdate(PartialUpdate):
    NON_NULLABLE = ("name", "status")

    name: str | None = Field(None, min_length=2, max_length=200)
    industry: Industry | None = None
    size: CompanySize | None = None
    revenue: float | None = Field(None, ge=0)
    employees: int | None = Field(None, ge=0)
    website: HttpUrl | None = None
    address: str | None = Field(None, max_length=300)
    city: str | None = Field(None, max_length=100)
    country: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=50)
    email: EmailStr | None = None
    description: str | None = Field(None, max_length=5000)
    status: CompanyStatus | None = None
    founded_year: int | None = None
    assigned_to: UUID | None = None

    @field_validator(*_OPTIONAL_TEXT, mode="before")
    @classmethod
    def blank_optional_text(cls, v):
        return blank_to_none(v)

    @field_validator("founded_year")
    @classmethod
    def founded_year_range(cls, v):
        return _check_founded_year(v)

    def changes(self) -> dict:
        data = super().changes()
        if data.get("website") is not None:
            data["website"] = str(data["website"])
        return data


class CompanyResponse(ORMModel):
    id: UUID
    name: str
    industry: Industry | None = None
    size: CompanySize | None = None
    revenue: float | None = None
    employees: int | None = None
    website: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    phone: str | None = None
    email: str | None = None
    description: str | None = None
    status: CompanyStatus
    founded_year: int | None = None
    created_by: UUID | None = None
    assigned_to: UUID | None = None
    created_at: datetime
    updated_at: datetime
    creator: UserSummary | None = None
    assignee: UserSummary | None = None


class CompanyListItem(CompanyResponse):
    counts: dict[str, int]
