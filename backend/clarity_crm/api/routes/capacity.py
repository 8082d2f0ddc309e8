"""Capacity Routes - weekly workload per user and per team.

Invariants:
    - `week` is any date inside the wanted week; it is normalised to Monday
    - Team views and settings changes are Sales Lead only
    - teamId defaults to the caller's team (400 when the caller has none)
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.core.authorization import (
    CurrentUser, require_sales_lead, require_user_details_access,
)
from clarity_crm.core.date_ranges import utc_now
from clarity_crm.core.errors import BadRequestError, ResourceNotFoundError
from clarity_crm.core.planning import parse_week_start
from clarity_crm.infrastructure.database import get_db
from clarity_crm.models.user import User
from clarity_crm.schemas.capacity import CapacitySettingsInput, CapacitySettingsResponse
from clarity_crm.services import capacity_service
from clarity_crm.services.references import get_or_404

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/capacity", tags=["capacity"])


def week_param(week: str | None = Query(None, description="Any date in the week")) -> datetime:
    return parse_week_start(week, utc_now(), field="week")


def _team_of(user: CurrentUser, team_id: UUID | None) -> UUID:
    team_id = team_id or user.team_id
    if team_id is None:
        raise BadRequestError("teamId is required when you are not in a team")
    return team_id


@router.get("/team")
async def team_capacity(
    team_id: UUID | None = Query(None, alias="teamId"),
    week: datetime = Depends(week_param),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_sales_lead(user)
    capacity = await capacity_service.get_team_capacity_info(db, _team_of(user, team_id), week)
    return capacity.to_dict()


@router.get("/team/best-available")
async def best_available_member(
    team_id: UUID | None = Query(None, alias="teamId"),
    week: datetime = Depends(week_param),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_sales_lead(user)
    best = await capacity_service.get_best_available_member(
        db, _team_of(user, team_id), week,
    )
    return {"member": best.to_dict() if best else None}


@router.get("/user/{user_id}")
async def user_capacity(
    user_id: UUID,
    week: datetime = Depends(week_param),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_user_details_access(user, user_id)
    info = await capacity_service.get_user_capacity_info(db, user_id, week)
    if info is None:
        raise ResourceNotFoundError("Capacity settings", str(user_id))
    return info.to_dict()


@router.put("/user/{user_id}", response_model=CapacitySettingsResponse)
async def update_user_capacity(
    user_id: UUID,
    body: CapacitySettingsInput,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_sales_lead(user)
    target = await get_or_404(db, User, user_id, "User")
    capacity = await capacity_service.upsert_user_capacity(db, target, body)
    await db.commit()
    await db.refresh(capacity)
    return capacity


@router.get("/user/{user_id}/can-assign")
async def can_assign(
    user_id: UUID,
    week: datetime = Depends(week_param),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_user_details_access(user, user_id)
    check = await capacity_service.can_assign_to_user(db, user_id, week)
    return check.to_dict()
