"""KPI Routes - team and per-agent revenue, pipeline and target metrics."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.core.authorization import (
    CurrentUser, can_view_team_performance, require_user_details_access,
)
from clarity_crm.core.errors import ForbiddenError
from clarity_crm.infrastructure.database import get_db
from clarity_crm.services import kpi_service

router = APIRouter(prefix="/api/kpis", tags=["kpis"])


@router.get("/team")
async def team_kpis(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not can_view_team_performance(user):
        raise ForbiddenError("Forbidden: team KPIs are available to Sales Leads only")
    return await kpi_service.team_kpis(db)


@router.get("/agent/{agent_id}")
async def agent_kpis(
    agent_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_user_details_access(user, agent_id)
    return await kpi_service.agent_kpis(db, agent_id)
