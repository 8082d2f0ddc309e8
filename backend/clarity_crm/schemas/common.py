"""Shared schema pieces - nested summaries, blank-string handling and partial updates.

Invariants:
    - Empty strings in optional text fields are stored as NULL
    - Partial updates only touch fields the client actually sent (model_fields_set)
    - Fields listed in NON_NULLABLE may be omitted from an update but never set to null
"""

from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, str):
        return value.strip()
    return value


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserSummary(ORMModel):
    id: UUID
    name: str
    email: str


class TeamSummary(ORMModel):
    id: UUID
    name: str


class CompanySummary(ORMModel):
    id: UUID
    name: str
    industry: str | None = None


class CustomerSummary(ORMModel):
    id: UUID
    name: str


class PartialUpdate(BaseModel):
    """Base for PATCH bodies."""

    NON_NULLABLE: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_for_required_columns(self):
        for name in self.model_fields_set:
            if name in self.NON_NULLABLE and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class TimestampedResponse(ORMModel):
    created_at: datetime
    updated_at: datetime | None = None
