"""Planning Routes - one call for the weekly planning screen."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.core.authorization import CurrentUser, is_sales_lead
from clarity_crm.core.date_ranges import utc_now
from clarity_crm.core.errors import BadRequestError, ForbiddenError
from clarity_crm.core.planning import parse_week_start
from clarity_crm.infrastructure.database import get_db
from clarity_crm.services.planning_service import initial_data

router = APIRouter(prefix="/api/planning", tags=["planning"])

CACHE_CONTROL = "public, s-maxage=60, stale-while-revalidate=120"


@router.get("/initial-data")
async def planning_initial_data(
    response: Response,
    team_id: UUID | None = Query(None, alias="teamId"),
    week_start: str | None = Query(None, alias="weekStart"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    team_id = team_id or user.team_id
    if team_id is None:
        raise BadRequestError("teamId is required when you are not in a team")
    if not is_sales_lead(user) and team_id != user.team_id:
        raise ForbiddenError("Forbidden: you can only plan for your own team")

    data = await initial_data(db, user, team_id, parse_week_start(week_start, utc_now()))
    response.headers["Cache-Control"] = CACHE_CONTROL
    return data
