"""KPIs - revenue, pipeline and performance math over DealFacts snapshots.

Invariants:
    - Revenue counts CLOSED_WON only, bucketed by actual_close_date
    - Conversion = won / (won + lost); 0 when nothing closed
    - Growth is 0 when the previous month had no revenue
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from clarity_crm.core.domain_types import CustomerStatus, DealStage, TargetPeriod
from clarity_crm.core.kpis import (
    DealFacts, PerformerFacts, TargetFacts, achievement_rate, average_deal_cycle,
    average_deal_size, compute_agent_kpis, compute_deal_stats, compute_team_kpis,
    conversion_rate, growth_rate, rank_of,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
JOHN = PerformerFacts(uuid4(), "John Davis", "john@clarity.com")
EMMA = PerformerFacts(uuid4(), "Emma Wilson", "emma@clarity.com")


def _deal(stage, value, owner=JOHN, probability=50, closed=None, expected=None, duration=None):
    return DealFacts(
        id=uuid4(),
        owner_id=owner.user_id,
        value=value,
        probability=probability,
        stage=stage,
        created_at=NOW - timedelta(days=30),
        actual_close_date=closed,
        expected_close_date=expected,
        total_duration=duration,
    )


def _target(period, value, user_id=None, month=None, quarter=None):
    return TargetFacts(
        id=uuid4(), user_id=user_id, period=period, year=2025,
        target_value=value, month=month, quarter=quarter,
    )


# --- building blocks ----------------------------------------------------------

def test_rates_guard_against_zero():
    assert growth_rate(100, 0) == 0.0
    assert growth_rate(150, 100) == 50.0
    assert achievement_rate(50, 0) == 0.0
    assert achievement_rate(50, 200) == 25.0
    assert conversion_rate(0, 0) == 0.0
    assert conversion_rate(3, 1) == 75.0


def test_average_deal_size_and_cycle():
    won = [
        _deal(DealStage.CLOSED_WON, 100, closed=NOW, duration=10),
        _deal(DealStage.CLOSED_WON, 300, closed=NOW, duration=15),
    ]
    assert average_deal_size(won) == 200
    assert average_deal_cycle(won) == 13
    assert average_deal_size([]) == 0.0
    assert average_deal_cycle([]) == 0


def test_rank_of_orders_by_revenue_descending():
    revenues = {JOHN.user_id: 500.0, EMMA.user_id: 900.0}
    assert rank_of(revenues, EMMA.user_id) == 1
    assert rank_of(revenues, JOHN.user_id) == 2
    assert rank_of(revenues, uuid4()) == 0


def test_deal_stats_count_outcomes():
    deals = [
        _deal(DealStage.PROPOSAL, 1000, probability=60),
        _deal(DealStage.CLOSED_WON, 500, probability=100, closed=NOW),
        _deal(DealStage.CLOSED_LOST, 200, probability=0, closed=NOW),
    ]
    stats = compute_deal_stats(deals)
    assert stats["total_value"] == 1700
    assert stats["weighted_value"] == 1100
    assert (stats["won_deals"], stats["lost_deals"], stats["active_deals"]) == (1, 1, 1)


# --- team KPIs ----------------------------------------------------------------

def test_team_revenue_buckets_by_close_month():
    deals = [
        _deal(DealStage.CLOSED_WON, 1000, closed=NOW - timedelta(days=2)),
        _deal(DealStage.CLOSED_WON, 400, owner=EMMA, closed=datetime(2025, 2, 10, tzinfo=timezone.utc)),
        _deal(DealStage.CLOSED_LOST, 700, closed=NOW),
    ]
    targets = [
        _target(TargetPeriod.MONTHLY, 2000, month=3),
        _target(TargetPeriod.QUARTERLY, 5000, quarter=1),
        _target(TargetPeriod.MONTHLY, 100, user_id=JOHN.user_id, month=3),
    ]
    kpis = compute_team_kpis(deals, [JOHN, EMMA], targets, NOW)
    revenue = kpis["revenue"]
    assert revenue["current"] == 1000
    assert revenue["previous"] == 400
    assert revenue["growth"] == 150.0
    assert revenue["target"] == 2000
    assert revenue["achievement"] == 50.0
    assert revenue["quarterly"] == 1400
    assert revenue["quarterly_target"] == 5000
    assert revenue["yearly_target"] == 0.0


def test_team_pipeline_only_counts_open_deals():
    deals = [
        _deal(DealStage.NEGOTIATION, 1000, probability=80),
        _deal(DealStage.PROSPECTING, 500, probability=20),
        _deal(DealStage.CLOSED_WON, 900, closed=NOW),
    ]
    pipeline = compute_team_kpis(deals, [JOHN], [], NOW)["pipeline"]
    assert pipeline["total_value"] == 1500
    assert pipeline["weighted_value"] == 900
    assert pipeline["deal_count"] == 2
    assert pipeline["conversion_rate"] == 100.0


def test_team_top_performers_sorted_by_revenue():
    deals = [
        _deal(DealStage.CLOSED_WON, 100, closed=NOW),
        _deal(DealStage.CLOSED_WON, 800, owner=EMMA, closed=NOW),
    ]
    performers = compute_team_kpis(deals, [JOHN, EMMA], [], NOW)["top_performers"]
    assert [p["name"] for p in performers] == ["Emma Wilson", "John Davis"]
    assert performers[0]["deals_won"] == 1


def test_team_forecast_covers_next_90_days():
    deals = [
        _deal(DealStage.PROPOSAL, 1000, probability=50, expected=NOW + timedelta(days=30)),
        _deal(DealStage.PROPOSAL, 1000, probability=50, expected=NOW + timedelta(days=120)),
    ]
    forecast = compute_team_kpis(deals, [JOHN], [], NOW)["forecast"]
    assert forecast == {"next_90_days": 500, "deal_count": 1}


def test_team_kpis_with_no_deals():
    kpis = compute_team_kpis([], [], [], NOW)
    assert kpis["summary"]["total_deals"] == 0
    assert kpis["pipeline"]["average_deal_size"] == 0.0
    assert len(kpis["deals_by_stage"]) == 6


# --- agent KPIs ---------------------------------------------------------------

def test_agent_kpis_rank_hot_deals_and_closing_soon():
    deals = [
        _deal(DealStage.NEGOTIATION, 2000, probability=80, expected=NOW + timedelta(days=3)),
        _deal(DealStage.QUALIFICATION, 500, probability=40, expected=NOW + timedelta(days=20)),
        _deal(DealStage.CLOSED_WON, 700, closed=NOW, duration=12),
    ]
    targets = [_target(TargetPeriod.MONTHLY, 1400, user_id=JOHN.user_id, month=3)]
    kpis = compute_agent_kpis(
        JOHN, deals, targets,
        {JOHN.user_id: 700.0, EMMA.user_id: 1200.0},
        [CustomerStatus.CUSTOMER, CustomerStatus.LEAD, CustomerStatus.LEAD],
        NOW,
    )
    assert kpis["user"]["name"] == "John Davis"
    assert kpis["revenue"]["rank"] == 2
    assert kpis["revenue"]["achievement"] == 50.0
    assert kpis["pipeline"]["hot_deals"] == 1
    assert kpis["upcoming"] == {
        "deals_closing_this_week": 1,
        "deals_closing_this_week_value": 2000,
    }
    assert kpis["customers"] == {"total": 3, "active": 1, "prospects": 0, "leads": 2}
    assert kpis["performance"]["avg_deal_cycle"] == 12
    assert kpis["targets"]["monthly"]["target_value"] == 1400
    assert kpis["targets"]["yearly"] is None
    assert [row["stage"] for row in kpis["deals_by_stage"]] == [
        "PROSPECTING", "QUALIFICATION", "PROPOSAL", "NEGOTIATION",
    ]
