"""Task Routes - task CRUD and the weekly board.

Invariants:
    - /weekly is declared before /{task_id} so it is not parsed as an id
    - The weekly board needs userId or teamId (400 otherwise)
    - Creating tasks is rate limited (create_task limiter, 20 / min)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user, time_window
from clarity_crm.core.authorization import (
    CurrentUser, is_sales_lead, require_user_details_access,
)
from clarity_crm.core.date_ranges import DateRange, utc_now
from clarity_crm.core.domain_types import TaskStatus
from clarity_crm.core.errors import BadRequestError, ForbiddenError
from clarity_crm.core.planning import parse_week_start
from clarity_crm.infrastructure.database import get_db
from clarity_crm.infrastructure.rate_limiter import create_task_limiter
from clarity_crm.models.task import Task
from clarity_crm.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from clarity_crm.services import task_service
from clarity_crm.services.references import get_or_404

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    assignee_id: UUID | None = Query(None, alias="assigneeId"),
    task_status: TaskStatus | None = Query(None, alias="status"),
    team_id: UUID | None = Query(None, alias="teamId"),
    window: DateRange | None = Depends(time_window),
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.list_tasks(db, assignee_id, task_status, team_id, window)


@router.post(
    "", response_model=TaskResponse, status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_task_limiter)],
)
async def create_task(
    body: TaskCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.create_task(db, user, body)


@router.get("/weekly")
async def weekly_tasks(
    user_id: UUID | None = Query(None, alias="userId"),
    team_id: UUID | None = Query(None, alias="teamId"),
    week_start: str | None = Query(None, alias="weekStart"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Board items for one user or for a team's active agents."""
    if not user_id and not team_id:
        raise BadRequestError("Either userId or teamId is required")
    if user_id:
        require_user_details_access(user, user_id)
    elif not is_sales_lead(user) and user.team_id != team_id:
        raise ForbiddenError("Forbidden: you cannot view this team's board")

    week = parse_week_start(week_start, utc_now())
    items = await task_service.weekly_board(db, week, user_id=user_id, team_id=team_id)
    return [item.to_dict() for item in items]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_or_404(db, Task, task_id, "Task")


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    body: TaskUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.update_task(db, user, task_id, body)


@router.delete("/{task_id}")
async def delete_task(
    task_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await task_service.delete_task(db, user, task_id)
    return {"message": "Task deleted successfully"}
