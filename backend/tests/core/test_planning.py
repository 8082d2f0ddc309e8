"""Planning - week parameter parsing, board items, ordering and member options."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from clarity_crm.core.authorization import CurrentUser
from clarity_crm.core.dashboard import (
    UPCOMING_BUFFER, is_upcoming_view, today_window, upcoming_window,
)
from clarity_crm.core.date_ranges import DateRange
from clarity_crm.core.domain_types import TaskPriority, TaskStatus, UserRole
from clarity_crm.core.errors import ValidationFailedError
from clarity_crm.core.planning import (
    Assignee, call_item, member_options, parse_week_start, sort_board, task_item,
)

NOW = datetime(2025, 3, 12, 10, 0, tzinfo=timezone.utc)
MONDAY = datetime(2025, 3, 10, tzinfo=timezone.utc)


# --- parse_week_start ---------------------------------------------------------

def test_week_defaults_to_current_monday():
    assert parse_week_start(None, NOW) == MONDAY


def test_week_from_date_is_normalized_to_monday():
    assert parse_week_start("2025-03-14", NOW) == MONDAY


def test_week_from_iso_datetime():
    assert parse_week_start("2025-03-16T22:00:00Z", NOW) == MONDAY


def test_invalid_week_raises_with_field_name():
    with pytest.raises(ValidationFailedError) as exc:
        parse_week_start("next-week", NOW, field="week")
    assert exc.value.details[0]["field"] == "week"


# --- board items --------------------------------------------------------------

def test_call_item_defaults():
    item = call_item(uuid4(), "Call Acme", None, None, None, 25)
    assert item.type == "call"
    assert item.priority == TaskPriority.MEDIUM
    assert item.kanban_status == TaskStatus.TODO
    assert item.estimated_duration == 25


def test_task_item_keeps_status_and_serializes():
    assignee = Assignee(uuid4(), "John")
    item = task_item(uuid4(), "Demo", "desc", assignee, 60, "HIGH", "IN_PROGRESS", MONDAY)
    data = item.to_dict()
    assert data["kanban_status"] == "IN_PROGRESS"
    assert data["priority"] == "HIGH"
    assert data["assignee"]["name"] == "John"
    assert data["due_date"] == MONDAY.isoformat()


def test_sort_board_priority_then_tasks_before_calls_then_title():
    items = [
        call_item(uuid4(), "b call", None, None, None, None),
        task_item(uuid4(), "z task", None, None, None, "MEDIUM", "TODO"),
        task_item(uuid4(), "urgent", None, None, None, "URGENT", "TODO"),
        task_item(uuid4(), "a task", None, None, None, "MEDIUM", "TODO"),
    ]
    assert [i.title for i in sort_board(items)] == ["urgent", "a task", "z task", "b call"]


# --- member options -----------------------------------------------------------

def test_member_options_for_lead_start_with_all_then_lead():
    lead = CurrentUser(uuid4(), "lead@x.com", "Sarah", UserRole.SALES_LEAD)
    members = [
        {"id": str(uuid4()), "name": "John", "email": "j@x.com", "role": "SALES_AGENT"},
        {"id": str(lead.id), "name": "Sarah", "email": "lead@x.com", "role": "SALES_LEAD"},
    ]
    options = member_options(lead, members)
    assert [o["id"] for o in options] == ["ALL", str(lead.id), members[0]["id"]]
    assert options[0]["name"] == "All Team Members"


def test_member_options_for_agent_unchanged():
    agent = CurrentUser(uuid4(), "a@x.com", "John", UserRole.SALES_AGENT)
    members = [{"id": str(agent.id), "name": "John"}]
    assert member_options(agent, members) == members


# --- dashboard windows --------------------------------------------------------

def test_upcoming_view_detection_allows_latency_buffer():
    assert not is_upcoming_view(None, NOW)
    assert is_upcoming_view(DateRange(NOW - UPCOMING_BUFFER, NOW), NOW)
    assert not is_upcoming_view(DateRange(NOW - UPCOMING_BUFFER * 2, NOW), NOW)


def test_today_and_upcoming_windows():
    assert today_window(NOW).start == datetime(2025, 3, 12, tzinfo=timezone.utc)
    window = upcoming_window(NOW)
    assert window.start == NOW
    assert (window.end - window.start).days == 7
