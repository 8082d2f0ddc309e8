"""Date Ranges - time-filter windows and calendar helpers used by list, KPI and dashboard routes.

Invariants:
    - All calendar math is done in UTC; naive datetimes are read as UTC (as_utc)
    - A DateRange is closed on both ends: start <= t <= end
    - end_of_* helpers return the last representable microsecond of the period
    - TimeFilter.ALL spans from the Unix epoch to `now`

Design Decisions:
    - `now` is always injectable so the functions stay pure and testable
    - Unknown filter strings are rejected (ValidationFailedError) rather than
      silently widened to "all"
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from clarity_crm.core.domain_types import TimeFilter
from clarity_crm.core.errors import ValidationFailedError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

TIME_FILTERS = [
    {"label": "Today", "value": TimeFilter.TODAY.value},
    {"label": "Last 7 days", "value": TimeFilter.LAST_7_DAYS.value},
    {"label": "Last 30 days", "value": TimeFilter.LAST_30_DAYS.value},
    {"label": "Last 90 days", "value": TimeFilter.LAST_90_DAYS.value},
    {"label": "This month", "value": TimeFilter.MONTH.value},
    {"label": "This quarter", "value": TimeFilter.QUARTER.value},
    {"label": "This year", "value": TimeFilter.YEAR.value},
    {"label": "All time", "value": TimeFilter.ALL.value},
]

TIME_FILTERS_WITH_UPCOMING = [
    {"label": "Today", "value": TimeFilter.TODAY.value},
    {"label": "Last 7 days", "value": TimeFilter.LAST_7_DAYS.value},
    {"label": "Last 30 days", "value": TimeFilter.LAST_30_DAYS.value},
    {"label": "Last 90 days", "value": TimeFilter.LAST_90_DAYS.value},
    {"label": "Next 7 days", "value": TimeFilter.UPCOMING_7_DAYS.value},
    {"label": "Next 30 days", "value": TimeFilter.UPCOMING_30_DAYS.value},
    {"label": "This month", "value": TimeFilter.MONTH.value},
    {"label": "This quarter", "value": TimeFilter.QUARTER.value},
    {"label": "This year", "value": TimeFilter.YEAR.value},
    {"label": "All time", "value": TimeFilter.ALL.value},
]

_PAGE_DEFAULTS = {
    "dashboard": TimeFilter.UPCOMING_7_DAYS,
    "tasks": TimeFilter.UPCOMING_7_DAYS,
    "user-details": TimeFilter.UPCOMING_7_DAYS,
    "activities": TimeFilter.LAST_7_DAYS,
    "call-notes": TimeFilter.LAST_30_DAYS,
    "kpis": TimeFilter.LAST_30_DAYS,
    "deals": TimeFilter.LAST_90_DAYS,
}


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def contains(self, value: datetime | None) -> bool:
        if value is None:
            return False
        value = as_utc(value)
        return self.start <= value <= self.end


# ─── Primitive helpers ───────────────────────────────────────────

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(as_utc(value).date(), time.min, tzinfo=timezone.utc)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(as_utc(value).date(), time.max, tzinfo=timezone.utc)


def add_days(value: datetime, days: int) -> datetime:
    return value + timedelta(days=days)


def quarter_of(month: int) -> int:
    """Calendar quarter (1-4) of a month number (1-12)."""
    return (month - 1) // 3 + 1


def _first_of_month(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def _next_month(year: int, month: int) -> tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def start_of_month(value: datetime) -> datetime:
    value = as_utc(value)
    return _first_of_month(value.year, value.month)


def end_of_month(value: datetime) -> datetime:
    value = as_utc(value)
    year, month = _next_month(value.year, value.month)
    return _first_of_month(year, month) - timedelta(microseconds=1)


def start_of_quarter(value: datetime) -> datetime:
    value = as_utc(value)
    first_month = (quarter_of(value.month) - 1) * 3 + 1
    return _first_of_month(value.year, first_month)


def end_of_quarter(value: datetime) -> datetime:
    value = as_utc(value)
    last_month = quarter_of(value.month) * 3
    year, month = _next_month(value.year, last_month)
    return _first_of_month(year, month) - timedelta(microseconds=1)


def start_of_year(value: datetime) -> datetime:
    return _first_of_month(as_utc(value).year, 1)


def end_of_year(value: datetime) -> datetime:
    return _first_of_month(as_utc(value).year + 1, 1) - timedelta(microseconds=1)


def previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


# ─── Time filters ────────────────────────────────────────────────

def parse_time_filter(
    value: str | None, default: TimeFilter = TimeFilter.ALL,
) -> TimeFilter:
    """Parse a `filter` query value; None/empty means `default`."""
    if not value:
        return default
    try:
        return TimeFilter(value)
    except ValueError:
        allowed = ", ".join(f.value for f in TimeFilter)
        raise ValidationFailedError(
            [{"field": "filter", "message": f"Must be one of: {allowed}"}],
        )


def get_date_range(
    time_filter: TimeFilter | None = None, now: datetime | None = None,
) -> DateRange:
    """Resolve a time filter to a concrete window relative to `now`."""
    now = as_utc(now) if now else utc_now()

    if time_filter == TimeFilter.TODAY:
        return DateRange(start_of_day(now), end_of_day(now))
    if time_filter == TimeFilter.LAST_7_DAYS:
        return DateRange(add_days(now, -7), now)
    if time_filter == TimeFilter.LAST_30_DAYS:
        return DateRange(add_days(now, -30), now)
    if time_filter == TimeFilter.LAST_90_DAYS:
        return DateRange(add_days(now, -90), now)
    if time_filter == TimeFilter.MONTH:
        return DateRange(start_of_month(now), end_of_month(now))
    if time_filter == TimeFilter.QUARTER:
        return DateRange(start_of_quarter(now), end_of_quarter(now))
    if time_filter == TimeFilter.YEAR:
        return DateRange(start_of_year(now), end_of_year(now))
    if time_filter == TimeFilter.UPCOMING_7_DAYS:
        return DateRange(now, add_days(now, 7))
    if time_filter == TimeFilter.UPCOMING_30_DAYS:
        return DateRange(now, add_days(now, 30))
    return DateRange(EPOCH, now)


def _format_day(value: date) -> str:
    return value.strftime("%d.%m.%Y")


def format_date_range(
    time_filter: TimeFilter, now: datetime | None = None,
) -> str:
    """Human label for a filter window, e.g. '01.03.2025 - 31.03.2025'."""
    if time_filter == TimeFilter.ALL:
        return "All time"
    window = get_date_range(time_filter, now)
    if window.start.date() == window.end.date():
        return _format_day(window.start.date())
    return f"{_format_day(window.start.date())} - {_format_day(window.end.date())}"


def default_time_filter(page: str) -> TimeFilter:
    return _PAGE_DEFAULTS.get(page, TimeFilter.LAST_30_DAYS)
