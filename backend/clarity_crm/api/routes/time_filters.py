"""Time filter options for date-scoped list screens."""

from fastapi import APIRouter, Depends, Query

from clarity_crm.api.deps import get_current_user
from clarity_crm.core.date_ranges import (
    TIME_FILTERS, TIME_FILTERS_WITH_UPCOMING, format_date_range,
)
from clarity_crm.core.domain_types import TimeFilter

router = APIRouter(
    prefix="/api/time-filters", tags=["time-filters"],
    dependencies=[Depends(get_current_user)],
)


@router.get("")
async def list_time_filters(upcoming: bool = Query(False)):
    options = TIME_FILTERS_WITH_UPCOMING if upcoming else TIME_FILTERS
    return [
        {**option, "range": format_date_range(TimeFilter(option["value"]))}
        for option in options
    ]
