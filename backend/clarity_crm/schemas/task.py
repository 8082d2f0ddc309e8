"""Task Schemas.

Invariants:
    - title 1-200 chars; status defaults to TODO, priority to MEDIUM
    - estimated_duration is minutes (> 0)
    - The creator is never taken from the body; it is the authenticated caller
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from clarity_crm.core.domain_types import TaskPriority, TaskStatus
from clarity_crm.schemas.common import (
    ORMModel, PartialUpdate, TeamSummary, UserSummary, blank_to_none,
)


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    estimated_duration: int | None = Field(None, gt=0, le=24 * 60 * 7)
    assignee_id: UUID | None = None
    team_id: UUID | None = None
    customer_id: UUID | None = None
    company_id: UUID | None = None
    deal_id: UUID | None = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return blank_to_none(v)


class TaskUpdate(PartialUpdate):
    NON_NULLABLE = ("title", "status", "priority")

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    estimated_duration: int | None = Field(None, gt=0, le=24 * 60 * 7)
    assignee_id: UUID | None = None
    team_id: UUID | None = None
    customer_id: UUID | None = None
    company_id: UUID | None = None
    deal_id: UUID | None = None


class TaskResponse(ORMModel):
    id: UUID
    title: str
    description: str | None = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    estimated_duration: int | None = None
    completed_at: datetime | None = None
    assignee_id: UUID | None = None
    created_by_id: UUID | None = None
    team_id: UUID | None = None
    customer_id: UUID | None = None
    company_id: UUID | None = None
    deal_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    assignee: UserSummary | None = None
    created_by: UserSummary | None = None
    team: TeamSummary | None = None
