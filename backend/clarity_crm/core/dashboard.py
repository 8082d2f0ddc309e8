"""Dashboard window rules - which date column scopes the task widget."""

from datetime import datetime, timedelta

from clarity_crm.core.date_ranges import DateRange, as_utc, end_of_day, start_of_day

UPCOMING_BUFFER = timedelta(minutes=5)
UPCOMING_TASK_DAYS = 7
TASK_LIMIT = 10
FEED_LIMIT = 5
UPCOMING_LIMIT = 15


def is_upcoming_view(window: DateRange | None, now: datetime) -> bool:
    """A window starting now or later (minus request latency) looks forward.

    Forward windows filter tasks by due date, backward ones by creation date.
    """
    if window is None:
        return False
    return window.start >= as_utc(now) - UPCOMING_BUFFER


def today_window(now: datetime) -> DateRange:
    return DateRange(start_of_day(now), end_of_day(now))


def upcoming_window(now: datetime) -> DateRange:
    now = as_utc(now)
    return DateRange(now, now + timedelta(days=UPCOMING_TASK_DAYS))
