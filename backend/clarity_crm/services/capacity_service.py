"""Capacity Service - counts weekly work items and feeds them to core/capacity.py.

Invariants:
    - Task items: tasks assigned to the user, status TODO/IN_PROGRESS, due inside the week
    - Call items: CALL activities by the user created inside the week
    - Users without a UserCapacity row have no capacity info (None)
    - Team capacity covers active SALES_AGENT members that have capacity settings

Design Decisions:
    - Team counts use two grouped queries for all members instead of one query
      per member
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.capacity import (
    AssignmentCheck,
    CapacityInfo,
    CapacitySettings,
    WeeklyCapacity,
    check_assignment,
    compute_capacity_info,
    get_week_end,
    get_week_start,
    pick_best_available,
    summarize_team,
)
from clarity_crm.core.date_ranges import utc_now
from clarity_crm.core.domain_types import ACTIVE_TASK_STATUSES, ActivityType, UserRole
from clarity_crm.models.activity import Activity
from clarity_crm.models.task import Task
from clarity_crm.models.user import User
from clarity_crm.models.user_capacity import UserCapacity
from clarity_crm.schemas.capacity import CapacitySettingsInput

logger = logging.getLogger(__name__)


def _settings_of(capacity: UserCapacity) -> CapacitySettings:
    return CapacitySettings(
        max_items_per_week=capacity.max_items_per_week,
        working_days=capacity.working_days,
        working_hours_start=capacity.working_hours_start,
        working_hours_end=capacity.working_hours_end,
    )


async def _weekly_counts(
    db: AsyncSession, user_ids: list[UUID], week_start: datetime,
) -> tuple[dict[UUID, int], dict[UUID, int]]:
    start, end = get_week_start(week_start), get_week_end(week_start)
    task_counts = {uid: 0 for uid in user_ids}
    call_counts = {uid: 0 for uid in user_ids}
    if not user_ids:
        return task_counts, call_counts

    task_rows = await db.execute(
        select(Task.assignee_id, func.count())
        .where(
            Task.assignee_id.in_(user_ids),
            Task.status.in_([s.value for s in ACTIVE_TASK_STATUSES]),
            Task.due_date >= start,
            Task.due_date <= end,
        )
        .group_by(Task.assignee_id),
    )
    for uid, n in task_rows.all():
        task_counts[uid] = n

    call_rows = await db.execute(
        select(Activity.user_id, func.count())
        .where(
            Activity.user_id.in_(user_ids),
            Activity.type == ActivityType.CALL.value,
            Activity.created_at >= start,
            Activity.created_at <= end,
        )
        .group_by(Activity.user_id),
    )
    for uid, n in call_rows.all():
        call_counts[uid] = n
    return task_counts, call_counts


async def get_user_capacity_info(
    db: AsyncSession, user_id: UUID, week_start: datetime | None = None,
) -> CapacityInfo | None:
    week_start = get_week_start(week_start or utc_now())
    user = await db.get(User, user_id)
    if user is None or user.capacity is None:
        return None
    tasks, calls = await _weekly_counts(db, [user.id], week_start)
    return compute_capacity_info(
        user.id, user.name, _settings_of(user.capacity), tasks[user.id], calls[user.id],
    )


async def get_team_capacity_info(
    db: AsyncSession, team_id: UUID, week_start: datetime | None = None,
) -> WeeklyCapacity:
    week_start = get_week_start(week_start or utc_now())
    result = await db.execute(
        select(User)
        .where(
            User.team_id == team_id,
            User.is_active.is_(True),
            User.role == UserRole.SALES_AGENT.value,
        )
        .order_by(User.name),
    )
    members = [m for m in result.scalars().all() if m.capacity is not None]
    tasks, calls = await _weekly_counts(db, [m.id for m in members], week_start)
    infos = [
        compute_capacity_info(
            m.id, m.name, _settings_of(m.capacity), tasks[m.id], calls[m.id],
        )
        for m in members
    ]
    return summarize_team(week_start, infos)


async def can_assign_to_user(
    db: AsyncSession, user_id: UUID, week_start: datetime | None = None,
) -> AssignmentCheck:
    return check_assignment(await get_user_capacity_info(db, user_id, week_start))


async def get_best_available_member(
    db: AsyncSession, team_id: UUID, week_start: datetime | None = None,
) -> CapacityInfo | None:
    team = await get_team_capacity_info(db, team_id, week_start)
    return pick_best_available(team.team_capacity)


def apply_capacity_settings(
    capacity: UserCapacity, settings: CapacitySettingsInput,
) -> UserCapacity:
    capacity.max_items_per_week = settings.max_items_per_week
    capacity.working_days = settings.working_days_csv()
    capacity.working_hours_start = settings.working_hours_start
    capacity.working_hours_end = settings.working_hours_end
    return capacity


async def upsert_user_capacity(
    db: AsyncSession, user: User, settings: CapacitySettingsInput,
) -> UserCapacity:
    """Create or replace the capacity settings of a loaded user (caller commits)."""
    capacity = user.capacity
    if capacity is None:
        capacity = UserCapacity(user_id=user.id)
        db.add(capacity)
        user.capacity = capacity
    apply_capacity_settings(capacity, settings)
    logger.info(
        "Capacity settings saved",
        extra={"user_id": str(user.id)},
    )
    return capacity
