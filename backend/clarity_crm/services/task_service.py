"""Task Service - task CRUD, reassignment and the weekly planning board.

Invariants:
    - created_by_id is always the authenticated caller
    - completed_at is stamped when status becomes COMPLETED, cleared when it leaves it
    - Reassignment and its NOTE activity are written in one transaction
    - Weekly board = tasks due Monday..Sunday + CALL activities created Monday..Sunday

Design Decisions:
    - Edit/delete/move rules live in core/authorization.py; this module only
      loads rows and applies them
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import (
    CurrentUser, can_delete_task, can_edit_task, can_move_task,
)
from clarity_crm.core.capacity import get_week_end, get_week_start
from clarity_crm.core.date_ranges import DateRange, utc_now
from clarity_crm.core.domain_types import ActivityType, TaskStatus, UserRole
from clarity_crm.core.errors import ForbiddenError
from clarity_crm.core.planning import (
    Assignee, BoardItem, call_item, sort_board, task_item,
)
from clarity_crm.infrastructure.database import run_in_transaction
from clarity_crm.models.activity import Activity
from clarity_crm.models.company import Company
from clarity_crm.models.customer import Customer
from clarity_crm.models.deal import Deal
from clarity_crm.models.task import Task
from clarity_crm.models.team import Team
from clarity_crm.models.user import User
from clarity_crm.schemas.task import TaskCreate, TaskUpdate
from clarity_crm.services.references import Reference, get_or_404, validate_references

logger = logging.getLogger(__name__)


def _task_references(
    assignee_id=None, team_id=None, customer_id=None, company_id=None, deal_id=None,
) -> list[Reference]:
    return [
        Reference("assignee_id", User, assignee_id, "Assignee"),
        Reference("team_id", Team, team_id, "Team"),
        Reference("customer_id", Customer, customer_id, "Customer"),
        Reference("company_id", Company, company_id, "Company"),
        Reference("deal_id", Deal, deal_id, "Deal"),
    ]


async def list_tasks(
    db: AsyncSession,
    assignee_id: UUID | None = None,
    status: TaskStatus | None = None,
    team_id: UUID | None = None,
    due_window: DateRange | None = None,
) -> list[Task]:
    query = select(Task).order_by(Task.created_at.desc())
    if assignee_id:
        query = query.where(Task.assignee_id == assignee_id)
    if status:
        query = query.where(Task.status == status.value)
    if team_id:
        query = query.where(Task.team_id == team_id)
    if due_window:
        query = query.where(
            Task.due_date >= due_window.start, Task.due_date <= due_window.end,
        )
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_task(
    db: AsyncSession, user: CurrentUser, body: TaskCreate,
) -> Task:
    await validate_references(db, *_task_references(
        body.assignee_id, body.team_id, body.customer_id, body.company_id, body.deal_id,
    ))
    data = body.model_dump()
    data["status"] = body.status.value
    data["priority"] = body.priority.value
    task = Task(**data, created_by_id=user.id)
    if body.status == TaskStatus.COMPLETED:
        task.completed_at = utc_now()
    db.add(task)
    await db.commit()
    await db.refresh(task)
    logger.info(
        "Task created",
        extra={"user_id": str(user.id), "resource_id": str(task.id)},
    )
    return task


async def reassign_task_with_activity(
    db: AsyncSession,
    task: Task,
    user: CurrentUser,
    new_assignee_id: UUID | None,
    changes: dict,
) -> Task:
    """Apply `changes`, move the task and log a NOTE activity, all or nothing."""

    async def _operation() -> Task:
        previous = task.assignee_id
        for name, value in changes.items():
            setattr(task, name, value)
        task.assignee_id = new_assignee_id
        db.add(Activity(
            type=ActivityType.NOTE.value,
            title=f"Task reassigned: {task.title}",
            description=(
                f"Task moved from {previous or 'unassigned'} "
                f"to {new_assignee_id or 'unassigned'}"
            ),
            user_id=user.id,
            task_id=task.id,
            deal_id=task.deal_id,
            customer_id=task.customer_id,
            company_id=task.company_id,
        ))
        await db.flush()
        return task

    await run_in_transaction(db, _operation, "Failed to reassign task")
    await db.refresh(task)
    return task


def _apply_status(task: Task, status: TaskStatus) -> None:
    if status == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED.value:
        task.completed_at = utc_now()
    elif status != TaskStatus.COMPLETED:
        task.completed_at = None
    task.status = status.value


async def update_task(
    db: AsyncSession, user: CurrentUser, task_id: UUID, body: TaskUpdate,
) -> Task:
    task = await get_or_404(db, Task, task_id, "Task")
    if not can_edit_task(user, task.created_by_id, task.assignee_id):
        raise ForbiddenError("Forbidden: you cannot edit this task")

    changes = body.changes()
    await validate_references(db, *_task_references(
        changes.get("assignee_id"), changes.get("team_id"), changes.get("customer_id"),
        changes.get("company_id"), changes.get("deal_id"),
    ))

    moving = "assignee_id" in changes and changes["assignee_id"] != task.assignee_id
    if moving and not can_move_task(user, task.created_by_id):
        raise ForbiddenError("Forbidden: only the creator or a Sales Lead can reassign")

    if "status" in changes:
        _apply_status(task, changes.pop("status"))
    if "priority" in changes:
        changes["priority"] = changes["priority"].value

    if moving:
        new_assignee = changes.pop("assignee_id")
        return await reassign_task_with_activity(db, task, user, new_assignee, changes)

    changes.pop("assignee_id", None)
    for name, value in changes.items():
        setattr(task, name, value)
    await db.commit()
    await db.refresh(task)
    return task


async def delete_task(db: AsyncSession, user: CurrentUser, task_id: UUID) -> None:
    task = await get_or_404(db, Task, task_id, "Task")
    if not can_delete_task(user, task.created_by_id):
        raise ForbiddenError("Forbidden: only the creator can delete this task")

    async def _operation() -> None:
        activities = await db.execute(select(Activity).where(Activity.task_id == task.id))
        for activity in activities.scalars().all():
            activity.task_id = None
        await db.delete(task)

    await run_in_transaction(db, _operation, "Failed to delete task")
    logger.info("Task deleted", extra={"user_id": str(user.id)})


# ─── Weekly board ────────────────────────────────────────────────

def _assignee_of(user: User | None) -> Assignee | None:
    if user is None:
        return None
    return Assignee(id=user.id, name=user.name, team_id=user.team_id)


async def weekly_board(
    db: AsyncSession,
    week_start: datetime,
    user_id: UUID | None = None,
    team_id: UUID | None = None,
) -> list[BoardItem]:
    """Board items of one user, or of the active agents of a team, for a week."""
    start, end = get_week_start(week_start), get_week_end(week_start)

    task_query = select(Task).where(Task.due_date >= start, Task.due_date <= end)
    call_query = select(Activity).where(
        Activity.type == ActivityType.CALL.value,
        Activity.created_at >= start,
        Activity.created_at <= end,
    )
    if user_id:
        task_query = task_query.where(Task.assignee_id == user_id)
        call_query = call_query.where(Activity.user_id == user_id)
    elif team_id:
        members = select(User.id).where(
            User.team_id == team_id,
            User.is_active.is_(True),
            User.role == UserRole.SALES_AGENT.value,
        )
        task_query = task_query.where(Task.assignee_id.in_(members))
        call_query = call_query.where(Activity.user_id.in_(members))

    tasks = (await db.execute(task_query)).scalars().all()
    calls = (await db.execute(call_query)).scalars().all()

    items = [
        task_item(
            t.id, t.title, t.description, _assignee_of(t.assignee),
            t.estimated_duration, t.priority, t.status, t.due_date,
        )
        for t in tasks
    ]
    items.extend(
        call_item(
            a.id, a.title, a.description, _assignee_of(a.user),
            a.estimated_duration, a.duration,
        )
        for a in calls
    )
    return sort_board(items)
