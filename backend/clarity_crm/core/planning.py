"""Planning - weekly board items and week parameter handling.

Invariants:
    - A requested week is always normalized to its Monday (UTC)
    - Board items: tasks due in the week plus CALL activities logged in the week
    - Tasks keep their own status as kanban_status; calls are MEDIUM / TODO
    - Board order: priority rank descending, tasks before calls, then title
    - Member options for leads: "ALL", then the lead, then every other member
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from clarity_crm.core.authorization import CurrentUser, is_sales_lead
from clarity_crm.core.capacity import get_week_start
from clarity_crm.core.domain_types import PRIORITY_RANK, TaskPriority, TaskStatus
from clarity_crm.core.errors import ValidationFailedError

ALL_MEMBERS_ID = "ALL"
ALL_MEMBERS_LABEL = "All Team Members"


def parse_week_start(
    value: str | None, now: datetime, field: str = "weekStart",
) -> datetime:
    """Monday 00:00 UTC of the week named by `value` (YYYY-MM-DD or ISO datetime)."""
    if not value:
        return get_week_start(now)
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            parsed = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        else:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationFailedError(
            [{"field": field, "message": "Expected a date in YYYY-MM-DD format"}],
        )
    return get_week_start(parsed)


@dataclass(frozen=True)
class Assignee:
    id: UUID
    name: str
    team_id: UUID | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "team_id": str(self.team_id) if self.team_id else None,
        }


@dataclass(frozen=True)
class BoardItem:
    id: UUID
    title: str
    description: str | None
    assignee: Assignee | None
    estimated_duration: int | None
    priority: TaskPriority
    kanban_status: TaskStatus
    type: str
    due_date: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "title": self.title,
            "description": self.description,
            "assignee": self.assignee.to_dict() if self.assignee else None,
            "estimated_duration": self.estimated_duration,
            "priority": self.priority.value,
            "kanban_status": self.kanban_status.value,
            "type": self.type,
            "due_date": self.due_date.isoformat() if self.due_date else None,
        }


def task_item(
    id: UUID,
    title: str,
    description: str | None,
    assignee: Assignee | None,
    estimated_duration: int | None,
    priority: str,
    status: str,
    due_date: datetime | None = None,
) -> BoardItem:
    return BoardItem(
        id=id,
        title=title,
        description=description,
        assignee=assignee,
        estimated_duration=estimated_duration,
        priority=TaskPriority(priority),
        kanban_status=TaskStatus(status),
        type="task",
        due_date=due_date,
    )


def call_item(
    id: UUID,
    title: str,
    description: str | None,
    assignee: Assignee | None,
    estimated_duration: int | None,
    duration: int | None,
) -> BoardItem:
    return BoardItem(
        id=id,
        title=title,
        description=description,
        assignee=assignee,
        estimated_duration=estimated_duration or duration,
        priority=TaskPriority.MEDIUM,
        kanban_status=TaskStatus.TODO,
        type="call",
    )


def sort_board(items: list[BoardItem]) -> list[BoardItem]:
    return sorted(
        items,
        key=lambda i: (-PRIORITY_RANK[i.priority], i.type != "task", i.title.lower()),
    )


def member_options(
    user: CurrentUser, members: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Assignee picker entries; `members` are dicts with at least id/name."""
    if not is_sales_lead(user):
        return members
    me = str(user.id)
    return [
        {"id": ALL_MEMBERS_ID, "name": ALL_MEMBERS_LABEL, "email": "", "role": ""},
        {"id": me, "name": user.name, "email": user.email, "role": user.role.value},
        *[m for m in members if m["id"] != me],
    ]
