"""Activity Routes - paged activity feed and CRUD.

Invariants:
    - List responses are JSON arrays; the unpaged total is sent in X-Total-Count
    - PATCH/DELETE need the owning user or an exempt role
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import Pagination, get_current_user, get_pagination, time_window
from clarity_crm.core.authorization import CurrentUser
from clarity_crm.core.date_ranges import DateRange
from clarity_crm.core.domain_types import ActivityType
from clarity_crm.infrastructure.database import get_db
from clarity_crm.models.activity import Activity
from clarity_crm.schemas.activity import ActivityCreate, ActivityResponse, ActivityUpdate
from clarity_crm.services import activity_service
from clarity_crm.services.references import get_or_404

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.get("", response_model=list[ActivityResponse])
async def list_activities(
    response: Response,
    user_id: UUID | None = Query(None, alias="userId"),
    activity_type: ActivityType | None = Query(None, alias="type"),
    window: DateRange | None = Depends(time_window),
    pagination: Pagination = Depends(get_pagination),
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    activities, total = await activity_service.list_activities(
        db, user_id, activity_type, window, pagination.offset, pagination.limit,
    )
    response.headers["X-Total-Count"] = str(total)
    return activities


@router.post("", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    body: ActivityCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await activity_service.create_activity(db, user, body)


@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: UUID,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_or_404(db, Activity, activity_id, "Activity")


@router.patch("/{activity_id}", response_model=ActivityResponse)
async def update_activity(
    activity_id: UUID,
    body: ActivityUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await activity_service.update_activity(db, user, activity_id, body)


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await activity_service.delete_activity(db, user, activity_id)
    return {"message": "Activity deleted successfully"}
