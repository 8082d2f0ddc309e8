"""Capacity - weekly workload math for users and teams.

Invariants:
    - A week runs Monday 00:00:00 to Sunday 23:59:59.999999 (UTC)
    - current_week_items = active tasks due in the week + CALL activities logged in the week
    - available_slots is never negative
    - status thresholds: >= 100% full (overloaded when strictly above max),
      >= 75% moderate, otherwise available
    - Percentages are rounded half-up to integers (0.5 -> 1)

Design Decisions:
    - Counting is done by the service layer; this module only turns counts into
      CapacityInfo, so every threshold is unit-testable without a database
    - Team totals only cover members that have capacity settings
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from clarity_crm.core.date_ranges import as_utc, start_of_day
from clarity_crm.core.domain_types import CapacityStatus

MODERATE_THRESHOLD = 75
FULL_THRESHOLD = 100


@dataclass(frozen=True)
class CapacitySettings:
    max_items_per_week: int
    working_days: str
    working_hours_start: int
    working_hours_end: int


@dataclass
class CapacityInfo:
    user_id: UUID
    user_name: str
    max_items_per_week: int
    current_week_items: int
    available_slots: int
    capacity_percentage: int
    status: CapacityStatus
    working_days: list[str]
    working_hours: dict[str, int]
    task_count: int = 0
    call_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "user_name": self.user_name,
            "max_items_per_week": self.max_items_per_week,
            "current_week_items": self.current_week_items,
            "available_slots": self.available_slots,
            "capacity_percentage": self.capacity_percentage,
            "status": self.status.value,
            "working_days": self.working_days,
            "working_hours": self.working_hours,
            "breakdown": {"tasks": self.task_count, "calls": self.call_count},
        }


@dataclass
class WeeklyCapacity:
    week_start: datetime
    week_end: datetime
    total_team_capacity: int
    total_team_usage: int
    team_capacity_percentage: int
    team_capacity: list[CapacityInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "total_team_capacity": self.total_team_capacity,
            "total_team_usage": self.total_team_usage,
            "team_capacity_percentage": self.team_capacity_percentage,
            "team_capacity": [info.to_dict() for info in self.team_capacity],
        }


@dataclass(frozen=True)
class AssignmentCheck:
    can_assign: bool
    available_slots: int
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "can_assign": self.can_assign,
            "reason": self.reason,
            "available_slots": self.available_slots,
        }


# ─── Week boundaries ─────────────────────────────────────────────

def get_week_start(value: datetime) -> datetime:
    """Monday 00:00 of the week containing `value` (Sunday closes the week)."""
    day = start_of_day(as_utc(value))
    return day - timedelta(days=day.weekday())


def get_week_end(value: datetime) -> datetime:
    """Sunday 23:59:59.999999 of the week containing `value`."""
    return get_week_start(value) + timedelta(days=7, microseconds=-1)


# ─── Computation ─────────────────────────────────────────────────

def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def usage_percentage(items: int, max_items: int) -> float:
    if max_items <= 0:
        return float(FULL_THRESHOLD) if items > 0 else 0.0
    return items / max_items * 100


def capacity_status(items: int, max_items: int) -> CapacityStatus:
    percentage = usage_percentage(items, max_items)
    if percentage >= FULL_THRESHOLD:
        return CapacityStatus.OVERLOADED if items > max_items else CapacityStatus.FULL
    if percentage >= MODERATE_THRESHOLD:
        return CapacityStatus.MODERATE
    return CapacityStatus.AVAILABLE


def compute_capacity_info(
    user_id: UUID,
    user_name: str,
    settings: CapacitySettings,
    task_count: int,
    call_count: int = 0,
) -> CapacityInfo:
    """Turn raw weekly counts into a CapacityInfo for one user."""
    items = task_count + call_count
    max_items = settings.max_items_per_week
    return CapacityInfo(
        user_id=user_id,
        user_name=user_name,
        max_items_per_week=max_items,
        current_week_items=items,
        available_slots=max(0, max_items - items),
        capacity_percentage=round_half_up(usage_percentage(items, max_items)),
        status=capacity_status(items, max_items),
        working_days=[d.strip() for d in settings.working_days.split(",") if d.strip()],
        working_hours={
            "start": settings.working_hours_start,
            "end": settings.working_hours_end,
        },
        task_count=task_count,
        call_count=call_count,
    )


def summarize_team(
    week_start: datetime, infos: list[CapacityInfo],
) -> WeeklyCapacity:
    total_capacity = sum(i.max_items_per_week for i in infos)
    total_usage = sum(i.current_week_items for i in infos)
    percentage = (
        round_half_up(total_usage / total_capacity * 100) if total_capacity > 0 else 0
    )
    return WeeklyCapacity(
        week_start=get_week_start(week_start),
        week_end=get_week_end(week_start),
        total_team_capacity=total_capacity,
        total_team_usage=total_usage,
        team_capacity_percentage=percentage,
        team_capacity=list(infos),
    )


def check_assignment(info: CapacityInfo | None) -> AssignmentCheck:
    """Can one more item be scheduled for this user this week?"""
    if info is None:
        return AssignmentCheck(
            can_assign=False,
            available_slots=0,
            reason="User capacity settings not found",
        )
    if info.available_slots <= 0:
        return AssignmentCheck(
            can_assign=False,
            available_slots=0,
            reason=(
                f"User is at capacity "
                f"({info.current_week_items}/{info.max_items_per_week})"
            ),
        )
    return AssignmentCheck(can_assign=True, available_slots=info.available_slots)


def pick_best_available(infos: list[CapacityInfo]) -> CapacityInfo | None:
    """Most free slots first, then the lightest current load."""
    if not infos:
        return None
    ranked = sorted(
        infos, key=lambda i: (-i.available_slots, i.current_week_items),
    )
    best = ranked[0]
    return best if best.available_slots > 0 else None


# ─── Presentation helpers ────────────────────────────────────────

def format_capacity_percentage(percentage: float) -> str:
    if percentage >= FULL_THRESHOLD:
        return "100%"
    return f"{round_half_up(percentage)}%"


def capacity_progress_width(percentage: float) -> str:
    return f"{min(100, max(0, percentage))}%"
