"""Team Routes - any user may read teams, only a Sales Lead may create or rename them."""

from uuid import uuid4


async def test_list_teams_ordered_by_name(client, team, agent_headers):
    await client.post("/api/teams", headers=agent_headers, json={"name": "Nope"})
    res = await client.get("/api/teams", headers=agent_headers)
    assert res.status_code == 200
    assert [t["name"] for t in res.json()] == ["Sales Team"]


async def test_lead_creates_team(client, lead_headers):
    res = await client.post(
        "/api/teams", headers=lead_headers,
        json={"name": "Enterprise", "description": "  "},
    )
    assert res.status_code == 201
    assert res.json()["name"] == "Enterprise"
    assert res.json()["description"] is None


async def test_agent_cannot_create_team(client, agent_headers):
    res = await client.post("/api/teams", headers=agent_headers, json={"name": "Rogue"})
    assert res.status_code == 403


async def test_team_detail_lists_members(client, team, lead, agent, agent_headers):
    res = await client.get(f"/api/teams/{team.id}", headers=agent_headers)
    assert res.status_code == 200
    members = res.json()["members"]
    assert [m["name"] for m in members] == ["John Davis", "Sarah Thompson"]
    assert {m["role"] for m in members} == {"SALES_AGENT", "SALES_LEAD"}
    assert "password_hash" not in members[0]


async def test_unknown_team_is_404(client, agent_headers):
    res = await client.get(f"/api/teams/{uuid4()}", headers=agent_headers)
    assert res.status_code == 404
    assert res.json()["error"]["context"]["resource_type"] == "Team"


async def test_lead_renames_team(client, team, lead_headers):
    res = await client.patch(
        f"/api/teams/{team.id}", headers=lead_headers, json={"name": "Inside Sales"},
    )
    assert res.status_code == 200
    assert res.json()["name"] == "Inside Sales"


async def test_team_name_cannot_be_nulled(client, team, lead_headers):
    res = await client.patch(f"/api/teams/{team.id}", headers=lead_headers, json={"name": None})
    assert res.status_code == 400
