"""Capacity and Planning Routes - weekly workload per agent and the planning screen payload.

Invariants:
    - Workload counts active tasks due this week plus CALL activities logged this week
    - Team totals cover active SALES_AGENT members with capacity settings only
    - The planning payload is cacheable and scoped to the caller's team for agents
"""

from datetime import timedelta
from uuid import uuid4

from clarity_crm.core.capacity import get_week_start
from clarity_crm.core.date_ranges import utc_now
from clarity_crm.core.domain_types import ActivityType, UserRole
from clarity_crm.models.activity import Activity
from clarity_crm.models.task import Task
from tests.services.factories import add, auth_headers, make_user


def _this_week(days: int = 1):
    return get_week_start(utc_now()) + timedelta(days=days, hours=10)


async def _load_agent(test_db, lead, agent, tasks: int, calls: int = 0):
    await add(test_db, *[
        Task(title=f"Task {i}", assignee_id=agent.id, created_by_id=lead.id, due_date=_this_week(1))
        for i in range(tasks)
    ], *[
        Activity(type=ActivityType.CALL.value, title=f"Call {i}", user_id=agent.id,
                 created_at=_this_week(0))
        for i in range(calls)
    ])


# ─── Capacity ────────────────────────────────────────────────────

async def test_user_capacity_counts_tasks_and_calls(client, lead, agent, agent_headers, test_db):
    await _load_agent(test_db, lead, agent, tasks=5, calls=3)
    await add(
        test_db,
        Task(title="Done", assignee_id=agent.id, created_by_id=lead.id,
             status="COMPLETED", due_date=_this_week(1)),
        Task(title="Next week", assignee_id=agent.id, created_by_id=lead.id,
             due_date=_this_week(9)),
    )
    res = await client.get(f"/api/capacity/user/{agent.id}", headers=agent_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["current_week_items"] == 8
    assert data["breakdown"] == {"tasks": 5, "calls": 3}
    assert data["available_slots"] == 2
    assert data["capacity_percentage"] == 80
    assert data["status"] == "moderate"


async def test_user_capacity_without_settings_is_404(client, test_db, team, lead_headers):
    newbie = await make_user(test_db, "new@clarity.com", "New Agent", team=team, max_items=None)
    res = await client.get(f"/api/capacity/user/{newbie.id}", headers=lead_headers)
    assert res.status_code == 404


async def test_agent_cannot_read_other_capacity(client, other_agent, agent_headers):
    res = await client.get(f"/api/capacity/user/{other_agent.id}", headers=agent_headers)
    assert res.status_code == 403


async def test_invalid_week_is_400(client, agent, agent_headers):
    res = await client.get(f"/api/capacity/user/{agent.id}?week=soon", headers=agent_headers)
    assert res.status_code == 400
    assert res.json()["error"]["details"][0]["field"] == "week"


async def test_team_capacity_for_lead(client, lead, agent, other_agent, lead_headers, test_db):
    await _load_agent(test_db, lead, agent, tasks=10)
    await _load_agent(test_db, lead, other_agent, tasks=3)
    res = await client.get("/api/capacity/team", headers=lead_headers)
    assert res.status_code == 200
    data = res.json()
    assert data["total_team_capacity"] == 22
    assert data["total_team_usage"] == 13
    assert data["team_capacity_percentage"] == 59
    by_name = {m["user_name"]: m for m in data["team_capacity"]}
    assert set(by_name) == {"John Davis", "Emma Wilson"}
    assert by_name["John Davis"]["status"] == "full"


async def test_team_capacity_forbidden_for_agent(client, agent_headers):
    res = await client.get("/api/capacity/team", headers=agent_headers)
    assert res.status_code == 403


async def test_team_capacity_needs_team_when_lead_has_none(client, test_db):
    manager = await make_user(test_db, "boss@clarity.com", "Boss", role=UserRole.SALES_LEAD)
    res = await client.get("/api/capacity/team", headers=auth_headers(manager))
    assert res.status_code == 400


async def test_best_available_member(client, lead, agent, other_agent, lead_headers, test_db):
    await _load_agent(test_db, lead, agent, tasks=9)
    await _load_agent(test_db, lead, other_agent, tasks=2)
    res = await client.get("/api/capacity/team/best-available", headers=lead_headers)
    assert res.json()["member"]["user_name"] == "Emma Wilson"
    assert res.json()["member"]["available_slots"] == 10


async def test_lead_updates_capacity_settings(client, agent, lead_headers, agent_headers):
    res = await client.put(
        f"/api/capacity/user/{agent.id}", headers=lead_headers,
        json={"max_items_per_week": 6, "working_days": "MONDAY,WEDNESDAY", "working_hours_start": 8},
    )
    assert res.status_code == 200
    assert res.json()["max_items_per_week"] == 6
    assert res.json()["working_days"] == "MONDAY,WEDNESDAY"

    denied = await client.put(
        f"/api/capacity/user/{agent.id}", headers=agent_headers, json={"max_items_per_week": 50},
    )
    assert denied.status_code == 403


async def test_can_assign_reports_full_agent(client, lead, agent, agent_headers, test_db):
    await _load_agent(test_db, lead, agent, tasks=10)
    res = await client.get(f"/api/capacity/user/{agent.id}/can-assign", headers=agent_headers)
    assert res.json() == {
        "can_assign": False,
        "reason": "User is at capacity (10/10)",
        "available_slots": 0,
    }


# ─── Planning ────────────────────────────────────────────────────

async def test_planning_initial_data_for_lead(client, lead, agent, other_agent, lead_headers, test_db):
    await _load_agent(test_db, lead, agent, tasks=1)
    res = await client.get("/api/planning/initial-data", headers=lead_headers)
    assert res.status_code == 200
    assert res.headers["Cache-Control"] == "public, s-maxage=60, stale-while-revalidate=120"
    data = res.json()
    assert [m["name"] for m in data["team_members"]] == [
        "All Team Members", "Sarah Thompson", "Emma Wilson", "John Davis",
    ]
    assert [i["title"] for i in data["weekly_tasks"]] == ["Task 0"]
    assert data["capacity"]["total_team_usage"] == 1
    assert data["week_start"] == get_week_start(utc_now()).date().isoformat()


async def test_planning_members_for_agent_have_no_all_option(client, other_agent, agent_headers):
    res = await client.get("/api/planning/initial-data", headers=agent_headers)
    assert [m["name"] for m in res.json()["team_members"]] == ["Emma Wilson", "John Davis"]


async def test_planning_other_team_forbidden_for_agent(client, agent_headers):
    res = await client.get(f"/api/planning/initial-data?teamId={uuid4()}", headers=agent_headers)
    assert res.status_code == 403


async def test_planning_without_team_is_400(client, test_db):
    loner = await make_user(test_db, "solo@clarity.com", "Solo Agent")
    res = await client.get("/api/planning/initial-data", headers=auth_headers(loner))
    assert res.status_code == 400
