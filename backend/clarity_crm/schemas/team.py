"""Team Schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clarity_crm.schemas.common import ORMModel, PartialUpdate, blank_to_none


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=2000)

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return blank_to_none(v)


class TeamUpdate(PartialUpdate):
    NON_NULLABLE = ("name",)

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=2000)


class TeamResponse(ORMModel):
    id: UUID
    name: str
    description: str | None = None
    created_at: datetime


class TeamMember(ORMModel):
    id: UUID
    name: str
    email: str
    role: str
    is_active: bool


class TeamDetailResponse(TeamResponse):
    members: list[TeamMember] = []
