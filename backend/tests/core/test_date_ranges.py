"""Date Ranges - time-filter windows and calendar helpers, pure functions with injected now.

Invariants:
    - Windows are closed on both ends and expressed in UTC
    - Unknown filter strings raise ValidationFailedError
    - "all" spans from the Unix epoch to now
"""

from datetime import datetime, timedelta, timezone

import pytest

from clarity_crm.core.date_ranges import (
    EPOCH, TIME_FILTERS, TIME_FILTERS_WITH_UPCOMING, DateRange, as_utc,
    default_time_filter, end_of_month, end_of_quarter, end_of_year,
    format_date_range, get_date_range, parse_time_filter, previous_month,
    quarter_of, start_of_day, start_of_quarter,
)
from clarity_crm.core.domain_types import TimeFilter
from clarity_crm.core.errors import ValidationFailedError

NOW = datetime(2025, 3, 15, 14, 30, tzinfo=timezone.utc)


# --- parse_time_filter --------------------------------------------------------

def test_parse_time_filter_accepts_known_values():
    assert parse_time_filter("7d") == TimeFilter.LAST_7_DAYS
    assert parse_time_filter("upcoming30d") == TimeFilter.UPCOMING_30_DAYS


def test_parse_time_filter_empty_returns_default():
    assert parse_time_filter(None) == TimeFilter.ALL
    assert parse_time_filter("", TimeFilter.MONTH) == TimeFilter.MONTH


def test_parse_time_filter_rejects_unknown_value():
    with pytest.raises(ValidationFailedError) as exc:
        parse_time_filter("fortnight")
    assert exc.value.http_status == 400
    assert exc.value.details[0]["field"] == "filter"


# --- get_date_range -----------------------------------------------------------

def test_today_spans_whole_day():
    window = get_date_range(TimeFilter.TODAY, NOW)
    assert window.start == datetime(2025, 3, 15, tzinfo=timezone.utc)
    assert window.end.date() == NOW.date()
    assert window.end.hour == 23 and window.end.microsecond == 999999


def test_rolling_windows_end_now():
    assert get_date_range(TimeFilter.LAST_7_DAYS, NOW) == DateRange(NOW - timedelta(days=7), NOW)
    assert get_date_range(TimeFilter.LAST_30_DAYS, NOW).start == NOW - timedelta(days=30)
    assert get_date_range(TimeFilter.LAST_90_DAYS, NOW).start == NOW - timedelta(days=90)


def test_upcoming_windows_start_now():
    assert get_date_range(TimeFilter.UPCOMING_7_DAYS, NOW) == DateRange(NOW, NOW + timedelta(days=7))
    assert get_date_range(TimeFilter.UPCOMING_30_DAYS, NOW).end == NOW + timedelta(days=30)


def test_month_window_covers_calendar_month():
    window = get_date_range(TimeFilter.MONTH, NOW)
    assert window.start == datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert window.end == datetime(2025, 4, 1, tzinfo=timezone.utc) - timedelta(microseconds=1)


def test_quarter_window_covers_calendar_quarter():
    window = get_date_range(TimeFilter.QUARTER, datetime(2025, 5, 20, tzinfo=timezone.utc))
    assert window.start == datetime(2025, 4, 1, tzinfo=timezone.utc)
    assert window.end.month == 6 and window.end.day == 30


def test_year_window_covers_calendar_year():
    window = get_date_range(TimeFilter.YEAR, NOW)
    assert window.start == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert window.end == datetime(2026, 1, 1, tzinfo=timezone.utc) - timedelta(microseconds=1)


def test_all_spans_from_epoch():
    assert get_date_range(TimeFilter.ALL, NOW) == DateRange(EPOCH, NOW)
    assert get_date_range(None, NOW) == DateRange(EPOCH, NOW)


def test_naive_now_is_read_as_utc():
    naive = datetime(2025, 3, 15, 14, 30)
    assert get_date_range(TimeFilter.LAST_7_DAYS, naive) == get_date_range(TimeFilter.LAST_7_DAYS, NOW)


# --- calendar helpers ---------------------------------------------------------

def test_date_range_contains_is_inclusive():
    window = DateRange(NOW, NOW + timedelta(days=1))
    assert window.contains(NOW)
    assert window.contains(NOW + timedelta(days=1))
    assert not window.contains(NOW - timedelta(microseconds=1))
    assert not window.contains(None)


def test_as_utc_converts_other_offsets():
    plus_two = datetime(2025, 3, 15, 16, 30, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(plus_two) == NOW
    assert as_utc(plus_two).tzinfo == timezone.utc


def test_quarter_of_months():
    assert [quarter_of(m) for m in (1, 3, 4, 6, 7, 10, 12)] == [1, 1, 2, 2, 3, 4, 4]


def test_end_of_month_handles_december_and_leap_year():
    assert end_of_month(datetime(2024, 12, 10)).day == 31
    assert end_of_month(datetime(2024, 2, 10)).day == 29
    assert end_of_month(datetime(2025, 2, 10)).day == 28


def test_end_of_quarter_and_year():
    assert end_of_quarter(datetime(2025, 11, 1)).date().isoformat() == "2025-12-31"
    assert start_of_quarter(datetime(2025, 11, 1)).month == 10
    assert end_of_year(NOW).date().isoformat() == "2025-12-31"


def test_previous_month_wraps_year():
    assert previous_month(2025, 1) == (2024, 12)
    assert previous_month(2025, 7) == (2025, 6)


def test_start_of_day_drops_time():
    assert start_of_day(NOW) == datetime(2025, 3, 15, tzinfo=timezone.utc)


# --- labels and defaults ------------------------------------------------------

def test_filter_option_lists():
    values = [f["value"] for f in TIME_FILTERS]
    assert "upcoming7d" not in values
    assert values[-1] == "all"
    upcoming = [f["value"] for f in TIME_FILTERS_WITH_UPCOMING]
    assert {"upcoming7d", "upcoming30d"} <= set(upcoming)


def test_format_date_range_uses_day_month_year():
    assert format_date_range(TimeFilter.MONTH, NOW) == "01.03.2025 - 31.03.2025"
    assert format_date_range(TimeFilter.TODAY, NOW) == "15.03.2025"
    assert format_date_range(TimeFilter.ALL, NOW) == "All time"


def test_default_time_filter_per_page():
    assert default_time_filter("dashboard") == TimeFilter.UPCOMING_7_DAYS
    assert default_time_filter("activities") == TimeFilter.LAST_7_DAYS
    assert default_time_filter("deals") == TimeFilter.LAST_90_DAYS
    assert default_time_filter("unknown-page") == TimeFilter.LAST_30_DAYS
