"""Capacity Schemas - per-user weekly capacity settings.

Invariants:
    - max_items_per_week in 1..100
    - working hours are whole hours with start < end
    - working_days are upper-case weekday names, stored comma-separated
"""

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from clarity_crm.core.domain_types import DEFAULT_MAX_ITEMS_PER_WEEK
from clarity_crm.schemas.common import ORMModel


class Weekday(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


class CapacitySettingsInput(BaseModel):
    max_items_per_week: int = Field(DEFAULT_MAX_ITEMS_PER_WEEK, ge=1, le=100)
    working_days: list[Weekday] = Field(
        default_factory=lambda: [
            Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY,
            Weekday.THURSDAY, Weekday.FRIDAY,
        ],
        min_length=1,
    )
    working_hours_start: int = Field(9, ge=0, le=23)
    working_hours_end: int = Field(17, ge=1, le=24)

    @field_validator("working_days", mode="before")
    @classmethod
    def split_days(cls, v):
        if isinstance(v, str):
            v = [d for d in v.split(",") if d.strip()]
        if isinstance(v, list):
            return [d.strip().upper() if isinstance(d, str) else d for d in v]
        return v

    @model_validator(mode="after")
    def check_hours(self):
        if self.working_hours_start >= self.working_hours_end:
            raise ValueError("working_hours_start must be before working_hours_end")
        return self

    def working_days_csv(self) -> str:
        seen = dict.fromkeys(d.value for d in self.working_days)
        return ",".join(seen)


class CapacitySettingsResponse(ORMModel):
    user_id: UUID
    max_items_per_week: int
    working_days: str
    working_hours_start: int
    working_hours_end: int
