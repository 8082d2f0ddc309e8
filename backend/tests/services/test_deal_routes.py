"""Deal Routes - pipeline stats, stage transitions, notes and cleanup on delete.

Invariants:
    - probability defaults to the stage's default on create only; updates keep the stored value
    - A company-only deal gets the company's first customer or a placeholder contact
    - Stage changes log a NOTE activity; closing stamps actual_close_date
    - Only the owner, the creator or an exempt role edits or deletes
"""

from datetime import timedelta

from sqlalchemy import select

from clarity_crm.core.date_ranges import utc_now
from clarity_crm.core.domain_types import ActivityType
from clarity_crm.models.activity import Activity
from clarity_crm.models.company import Company
from clarity_crm.models.customer import Customer
from clarity_crm.models.deal import Deal
from clarity_crm.models.deal_note import DealNote
from clarity_crm.models.task import Task
from tests.services.factories import add


async def test_create_deal_defaults_probability_and_owner(client, agent, agent_headers):
    res = await client.post(
        "/api/deals", headers=agent_headers, json={"name": "Acme expansion", "value": 5000},
    )
    assert res.status_code == 201
    data = res.json()
    assert data["stage"] == "PROSPECTING"
    assert data["probability"] == 20
    assert data["owner_id"] == str(agent.id)
    assert data["created_by"] == str(agent.id)
    assert data["days_in_stage"] == 0
    assert data["actual_close_date"] is None


async def test_create_closed_deal_stamps_close(client, agent_headers):
    res = await client.post(
        "/api/deals", headers=agent_headers,
        json={"name": "Quick win", "value": 900, "stage": "CLOSED_WON"},
    )
    data = res.json()
    assert data["probability"] == 100
    assert data["actual_close_date"] is not None
    assert data["total_duration"] == 0


async def test_company_only_deal_gets_placeholder_customer(client, agent, agent_headers, test_db):
    acme = await add(test_db, Company(name="Acme Corp", created_by=agent.id))
    res = await client.post(
        "/api/deals", headers=agent_headers,
        json={"name": "Acme pilot", "value": 1200, "company_id": str(acme.id)},
    )
    assert res.status_code == 201
    customer = res.json()["customer"]
    assert customer["name"] == "Deal Contact"

    placeholder = await test_db.scalar(select(Customer).where(Customer.company_id == acme.id))
    assert placeholder.status == "PROSPECT"
    assert placeholder.company == "Acme Corp"


async def test_company_only_deal_reuses_existing_customer(client, agent, agent_headers, test_db):
    acme = await add(test_db, Company(name="Acme Corp", created_by=agent.id))
    alice = await add(test_db, Customer(name="Alice", company_id=acme.id, created_by=agent.id))
    res = await client.post(
        "/api/deals", headers=agent_headers,
        json={"name": "Acme pilot", "value": 1200, "company_id": str(acme.id)},
    )
    assert res.json()["customer_id"] == str(alice.id)


async def test_create_deal_unknown_owner_is_400(client, agent_headers):
    res = await client.post(
        "/api/deals", headers=agent_headers,
        json={"name": "Orphan", "value": 10, "owner_id": "00000000-0000-0000-0000-000000000001"},
    )
    assert res.status_code == 400
    assert res.json()["error"]["details"] == [{"field": "owner_id", "message": "Owner not found"}]


async def test_list_deals_with_stats(client, agent, other_agent, agent_headers, test_db):
    now = utc_now()
    await add(
        test_db,
        Deal(name="Open", value=1000, probability=50, stage="PROPOSAL", owner_id=agent.id,
             created_at=now - timedelta(days=3)),
        Deal(name="Won", value=2000, probability=100, stage="CLOSED_WON", owner_id=agent.id,
             actual_close_date=now - timedelta(days=1), created_at=now - timedelta(days=2)),
        Deal(name="Lost", value=500, probability=0, stage="CLOSED_LOST", owner_id=other_agent.id,
             actual_close_date=now - timedelta(days=1), created_at=now - timedelta(days=1)),
    )
    res = await client.get("/api/deals", headers=agent_headers)
    body = res.json()
    assert [d["name"] for d in body["deals"]] == ["Lost", "Won", "Open"]
    assert body["stats"] == {
        "total_value": 3500,
        "weighted_value": 2500,
        "deal_count": 3,
        "won_deals": 1,
        "lost_deals": 1,
        "active_deals": 1,
    }

    mine = await client.get(f"/api/deals?ownerId={agent.id}&stage=PROPOSAL", headers=agent_headers)
    assert [d["name"] for d in mine.json()["deals"]] == ["Open"]


async def test_open_deal_days_in_stage_is_live(client, agent, agent_headers, test_db):
    deal = await add(
        test_db,
        Deal(name="Stale", value=100, owner_id=agent.id,
             stage_changed_at=utc_now() - timedelta(days=9, hours=1)),
    )
    res = await client.get(f"/api/deals/{deal.id}", headers=agent_headers)
    assert res.json()["days_in_stage"] == 9


async def test_stage_change_closes_deal_and_logs_activity(client, agent, agent_headers, test_db):
    deal = await add(test_db, Deal(name="Acme renewal", value=800, owner_id=agent.id))
    res = await client.patch(
        f"/api/deals/{deal.id}", headers=agent_headers, json={"stage": "CLOSED_WON"},
    )
    assert res.status_code == 200
    data = res.json()
    assert data["stage"] == "CLOSED_WON"
    assert data["actual_close_date"] is not None
    assert data["total_duration"] == 0

    activity = await test_db.scalar(select(Activity).where(Activity.deal_id == deal.id))
    assert activity.type == ActivityType.NOTE.value
    assert activity.title == "Deal stage changed: Acme renewal"
    assert activity.description == "Stage moved from PROSPECTING to CLOSED_WON"


async def test_stage_change_keeps_stored_probability(client, agent, agent_headers, test_db):
    deal = await add(
        test_db,
        Deal(name="Forecasted", value=1000, probability=55, stage="QUALIFICATION",
             owner_id=agent.id),
    )
    res = await client.patch(
        f"/api/deals/{deal.id}", headers=agent_headers, json={"stage": "PROPOSAL"},
    )
    assert res.status_code == 200
    assert res.json()["stage"] == "PROPOSAL"
    assert res.json()["probability"] == 55

    listing = await client.get("/api/deals", headers=agent_headers)
    assert listing.json()["stats"]["weighted_value"] == 550


async def test_reopening_deal_clears_close(client, agent, agent_headers, test_db):
    deal = await add(
        test_db,
        Deal(name="Back again", value=800, owner_id=agent.id, stage="CLOSED_LOST",
             probability=0, actual_close_date=utc_now(), total_duration=4),
    )
    res = await client.patch(
        f"/api/deals/{deal.id}", headers=agent_headers,
        json={"stage": "NEGOTIATION", "probability": 65},
    )
    data = res.json()
    assert data["probability"] == 65
    assert data["actual_close_date"] is None
    assert data["total_duration"] is None


async def test_plain_update_logs_generic_activity(client, agent, agent_headers, test_db):
    deal = await add(test_db, Deal(name="Acme renewal", value=800, owner_id=agent.id))
    await client.patch(f"/api/deals/{deal.id}", headers=agent_headers, json={"value": 950})
    activity = await test_db.scalar(select(Activity).where(Activity.deal_id == deal.id))
    assert activity.title == "Deal updated: Acme renewal"
    assert activity.description == "Updated fields: value"


async def test_other_agent_cannot_edit_deal(client, agent, other_agent_headers, lead_headers, test_db):
    deal = await add(test_db, Deal(name="Mine", value=100, owner_id=agent.id, created_by=agent.id))
    denied = await client.patch(f"/api/deals/{deal.id}", headers=other_agent_headers, json={"value": 1})
    assert denied.status_code == 403
    assert denied.json()["error"]["message"] == "Forbidden: you cannot edit this deal"

    allowed = await client.patch(f"/api/deals/{deal.id}", headers=lead_headers, json={"value": 2})
    assert allowed.status_code == 200


async def test_delete_deal_cleans_up(client, lead, agent, agent_headers, test_db):
    deal = await add(test_db, Deal(name="Doomed", value=100, owner_id=agent.id))
    task = await add(test_db, Task(title="Prep", deal_id=deal.id, created_by_id=lead.id))
    await add(
        test_db,
        DealNote(deal_id=deal.id, user_id=agent.id, content="Budget cut"),
        Activity(type=ActivityType.NOTE.value, title="n", user_id=agent.id, deal_id=deal.id),
    )

    res = await client.delete(f"/api/deals/{deal.id}", headers=agent_headers)
    assert res.json() == {"message": "Deal deleted successfully"}

    test_db.expunge_all()
    assert (await test_db.execute(select(DealNote))).scalars().all() == []
    assert (await test_db.execute(select(Activity))).scalars().all() == []
    kept = await test_db.get(Task, task.id)
    assert kept is not None
    assert kept.deal_id is None


async def test_notes_show_on_detail(client, agent, agent_headers, test_db):
    deal = await add(test_db, Deal(name="Acme", value=100, owner_id=agent.id))
    res = await client.post(
        f"/api/deals/{deal.id}/notes", headers=agent_headers, json={"content": "  Call back Friday  "},
    )
    assert res.status_code == 201
    assert res.json()["content"] == "Call back Friday"

    detail = await client.get(f"/api/deals/{deal.id}", headers=agent_headers)
    assert detail.json()["note_count"] == 1
    assert detail.json()["notes"][0]["user"]["name"] == "John Davis"


async def test_blank_note_is_400(client, agent, agent_headers, test_db):
    deal = await add(test_db, Deal(name="Acme", value=100, owner_id=agent.id))
    res = await client.post(f"/api/deals/{deal.id}/notes", headers=agent_headers, json={"content": "   "})
    assert res.status_code == 400


async def test_deal_writes_rate_limited(client, agent_headers):
    for i in range(10):
        res = await client.post("/api/deals", headers=agent_headers, json={"name": f"d{i}", "value": 1})
        assert res.status_code == 201
    res = await client.post("/api/deals", headers=agent_headers, json={"name": "extra", "value": 1})
    assert res.status_code == 429
