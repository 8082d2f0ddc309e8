"""Team Routes - list, create, inspect and rename teams (writes are lead-only)."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.core.authorization import CurrentUser, require_sales_lead
from clarity_crm.infrastructure.database import get_db
from clarity_crm.models.team import Team
from clarity_crm.models.user import User
from clarity_crm.schemas.team import (
    TeamCreate, TeamDetailResponse, TeamMember, TeamResponse, TeamUpdate,
)
from clarity_crm.services.references import get_or_404

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/teams", tags=["teams"])


@router.get("", response_model=list[TeamResponse])
async def list_teams(
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Team).order_by(Team.name))
    return result.scalars().all()


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    body: TeamCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_sales_lead(user)
    team = Team(**body.model_dump())
    db.add(team)
    await db.commit()
    await db.refresh(team)
    logger.info(
        "Team created",
        extra={"user_id": str(user.id), "resource_id": str(team.id)},
    )
    return team


@router.get("/{team_id}", response_model=TeamDetailResponse)
async def get_team(
    team_id: UUID,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    team = await get_or_404(db, Team, team_id, "Team")
    members = await db.execute(
        select(User).where(User.team_id == team.id).order_by(User.name),
    )
    detail = TeamDetailResponse.model_validate(team)
    detail.members = [TeamMember.model_validate(m) for m in members.scalars().all()]
    return detail


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: UUID,
    body: TeamUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_sales_lead(user)
    team = await get_or_404(db, Team, team_id, "Team")
    for name, value in body.changes().items():
        setattr(team, name, value)
    await db.commit()
    await db.refresh(team)
    return team
