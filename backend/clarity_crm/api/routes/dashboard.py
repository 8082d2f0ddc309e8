"""Dashboard Routes - home screen aggregation scoped by role."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user, parse_datetime_param
from clarity_crm.core.authorization import CurrentUser
from clarity_crm.core.date_ranges import DateRange, EPOCH, as_utc, utc_now
from clarity_crm.core.errors import ValidationFailedError
from clarity_crm.infrastructure.database import get_db
from clarity_crm.infrastructure.rate_limiter import read_limiter
from clarity_crm.schemas.activity import ActivityResponse
from clarity_crm.schemas.call_note import CallNoteResponse
from clarity_crm.schemas.task import TaskResponse
from clarity_crm.schemas.user import UserResponse
from clarity_crm.services.dashboard_service import dashboard_data

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


def _window(start: str | None, end: str | None) -> DateRange | None:
    start_at = parse_datetime_param(start, "start")
    end_at = parse_datetime_param(end, "end")
    if start_at is None and end_at is None:
        return None
    window = DateRange(
        as_utc(start_at) if start_at else EPOCH,
        as_utc(end_at) if end_at else utc_now(),
    )
    if window.start > window.end:
        raise ValidationFailedError(
            [{"field": "start", "message": "start must not be after end"}],
        )
    return window


@router.get("", dependencies=[Depends(read_limiter)])
async def dashboard(
    start: str | None = Query(None),
    end: str | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await dashboard_data(db, user, _window(start, end))
    return {
        "users": [UserResponse.model_validate(u) for u in data["users"]],
        "tasks": [TaskResponse.model_validate(t) for t in data["tasks"]],
        "activities": [ActivityResponse.model_validate(a) for a in data["activities"]],
        "call_notes": [CallNoteResponse.model_validate(c) for c in data["call_notes"]],
        "upcoming_tasks": [TaskResponse.model_validate(t) for t in data["upcoming_tasks"]],
        "stats": data["stats"],
    }
