"""Dashboard Service - one-call aggregation for the home screen.

Invariants:
    - Agents only see their own tasks, activities and call notes; leads see all
    - Active tasks are filtered by due date for forward-looking windows and by
      creation date otherwise (core/dashboard.py decides which)
    - Stats are real counts over the same filters, not lengths of the limited lists
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import CurrentUser, is_sales_lead
from clarity_crm.core.dashboard import (
    FEED_LIMIT, TASK_LIMIT, UPCOMING_LIMIT, is_upcoming_view, today_window, upcoming_window,
)
from clarity_crm.core.date_ranges import DateRange, as_utc, utc_now
from clarity_crm.core.domain_types import ACTIVE_TASK_STATUSES
from clarity_crm.models.activity import Activity
from clarity_crm.models.call_note import CallNote
from clarity_crm.models.task import Task
from clarity_crm.models.user import User

_ACTIVE = [s.value for s in ACTIVE_TASK_STATUSES]


def _between(column, window: DateRange | None) -> list:
    if window is None:
        return []
    return [column >= window.start, column <= window.end]


async def _rows(db: AsyncSession, query) -> list:
    return list((await db.execute(query)).scalars().all())


async def _count(db: AsyncSession, model, conditions: list) -> int:
    return await db.scalar(
        select(func.count()).select_from(model).where(*conditions),
    ) or 0


async def dashboard_data(
    db: AsyncSession,
    user: CurrentUser,
    window: DateRange | None = None,
    now: datetime | None = None,
) -> dict:
    now = as_utc(now) if now else utc_now()
    lead = is_sales_lead(user)

    task_filter = [Task.status.in_(_ACTIVE)]
    activity_filter = _between(Activity.created_at, window)
    call_filter = _between(CallNote.created_at, window)
    if is_upcoming_view(window, now):
        task_filter += _between(Task.due_date, window)
    else:
        task_filter += _between(Task.created_at, window)
    if not lead:
        task_filter.append(Task.assignee_id == user.id)
        activity_filter.append(Activity.user_id == user.id)
        call_filter.append(CallNote.user_id == user.id)

    users = await _rows(
        db, select(User).where(User.is_active.is_(True)).order_by(User.name),
    )
    tasks = await _rows(
        db,
        select(Task).where(*task_filter)
        .order_by(Task.due_date.is_(None), Task.due_date).limit(TASK_LIMIT),
    )
    activities = await _rows(
        db,
        select(Activity).where(*activity_filter)
        .order_by(Activity.created_at.desc()).limit(FEED_LIMIT),
    )
    call_notes = await _rows(
        db,
        select(CallNote).where(*call_filter)
        .order_by(CallNote.created_at.desc()).limit(FEED_LIMIT),
    )

    upcoming_tasks: list[Task] = []
    upcoming_count = 0
    if lead:
        upcoming_filter = [
            Task.status.in_(_ACTIVE), *_between(Task.due_date, upcoming_window(now)),
        ]
        upcoming_tasks = await _rows(
            db,
            select(Task).where(*upcoming_filter)
            .order_by(Task.due_date).limit(UPCOMING_LIMIT),
        )
        upcoming_count = await _count(db, Task, upcoming_filter)

    today = today_window(now)
    today_filter = activity_filter + _between(Activity.created_at, today)

    return {
        "users": users,
        "tasks": tasks,
        "activities": activities,
        "call_notes": call_notes,
        "upcoming_tasks": upcoming_tasks,
        "stats": {
            "total_users": len(users),
            "active_tasks": await _count(db, Task, task_filter),
            "today_activities": await _count(db, Activity, today_filter),
            "total_calls": await _count(db, CallNote, call_filter),
            "upcoming_tasks": upcoming_count,
        },
    }
