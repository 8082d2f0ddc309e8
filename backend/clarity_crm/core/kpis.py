"""KPIs - revenue, pipeline and performance metrics computed from deal snapshots.

Invariants:
    - Revenue only counts CLOSED_WON deals, bucketed by actual_close_date (UTC)
    - Pipeline value only counts open deals; weighted value = value * probability / 100
    - Conversion rate = won / (won + lost) * 100, 0 when nothing closed
    - Growth is 0 when the previous period had no revenue
    - Team targets are targets without a user; agent targets belong to the agent
    - Averages of days (stage age, deal cycle) are rounded to whole days

Design Decisions:
    - DealFacts / TargetFacts snapshots decouple the math from the ORM so the
      whole module is tested with plain dataclasses
    - Everything is computed in memory from one deal query per request; the
      dataset of a single sales team is small
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable
from uuid import UUID

from clarity_crm.core.capacity import round_half_up
from clarity_crm.core.date_ranges import DateRange, as_utc, previous_month, quarter_of
from clarity_crm.core.domain_types import (
    ALL_STAGES,
    CLOSED_STAGES,
    HOT_DEAL_PROBABILITY,
    OPEN_STAGES,
    CustomerStatus,
    DealStage,
    TargetPeriod,
)

FORECAST_DAYS = 90
CLOSING_SOON_DAYS = 7
TOP_PERFORMERS = 5


@dataclass(frozen=True)
class DealFacts:
    id: UUID
    owner_id: UUID | None
    value: float
    probability: int
    stage: DealStage
    created_at: datetime
    actual_close_date: datetime | None = None
    expected_close_date: datetime | None = None
    days_in_stage: int = 0
    total_duration: int | None = None

    @property
    def weighted_value(self) -> float:
        return self.value * self.probability / 100

    @property
    def is_open(self) -> bool:
        return self.stage not in CLOSED_STAGES


@dataclass(frozen=True)
class TargetFacts:
    id: UUID
    user_id: UUID | None
    period: TargetPeriod
    year: int
    target_value: float
    actual_value: float = 0.0
    month: int | None = None
    quarter: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "user_id": str(self.user_id) if self.user_id else None,
            "period": self.period.value,
            "year": self.year,
            "month": self.month,
            "quarter": self.quarter,
            "target_value": self.target_value,
            "actual_value": self.actual_value,
        }


@dataclass(frozen=True)
class PerformerFacts:
    user_id: UUID
    name: str
    email: str


# ─── Building blocks ─────────────────────────────────────────────

def deal_in_window(deal: DealFacts, window: DateRange) -> bool:
    """Open deals are dated by creation, closed ones by their close date."""
    if deal.actual_close_date is None:
        return window.contains(deal.created_at)
    return window.contains(deal.actual_close_date)


def split_by_outcome(
    deals: Iterable[DealFacts],
) -> tuple[list[DealFacts], list[DealFacts], list[DealFacts]]:
    """Return (won, lost, open)."""
    won, lost, active = [], [], []
    for d in deals:
        if d.stage == DealStage.CLOSED_WON:
            won.append(d)
        elif d.stage == DealStage.CLOSED_LOST:
            lost.append(d)
        else:
            active.append(d)
    return won, lost, active


def compute_deal_stats(deals: list[DealFacts]) -> dict[str, Any]:
    won, lost, active = split_by_outcome(deals)
    return {
        "total_value": sum(d.value for d in deals),
        "weighted_value": sum(d.weighted_value for d in deals),
        "deal_count": len(deals),
        "won_deals": len(won),
        "lost_deals": len(lost),
        "active_deals": len(active),
    }


def _closed_on(deal: DealFacts) -> datetime | None:
    return as_utc(deal.actual_close_date) if deal.actual_close_date else None


def revenue_in_month(won: Iterable[DealFacts], year: int, month: int) -> float:
    total = 0.0
    for d in won:
        closed = _closed_on(d)
        if closed and closed.year == year and closed.month == month:
            total += d.value
    return total


def revenue_in_quarter(won: Iterable[DealFacts], year: int, quarter: int) -> float:
    total = 0.0
    for d in won:
        closed = _closed_on(d)
        if closed and closed.year == year and quarter_of(closed.month) == quarter:
            total += d.value
    return total


def revenue_in_year(won: Iterable[DealFacts], year: int) -> float:
    return sum(
        d.value for d in won if (c := _closed_on(d)) is not None and c.year == year
    )


def growth_rate(current: float, previous: float) -> float:
    if previous > 0:
        return (current - previous) / previous * 100
    return 0.0


def achievement_rate(actual: float, target: float) -> float:
    return actual / target * 100 if target else 0.0


def conversion_rate(won: int, lost: int) -> float:
    closed = won + lost
    return won / closed * 100 if closed > 0 else 0.0


def average_deal_size(won: list[DealFacts]) -> float:
    return sum(d.value for d in won) / len(won) if won else 0.0


def average_deal_cycle(won: list[DealFacts]) -> int:
    durations = [d.total_duration for d in won if d.total_duration]
    return round_half_up(sum(durations) / len(durations)) if durations else 0


def find_target(
    targets: Iterable[TargetFacts],
    period: TargetPeriod,
    year: int,
    month: int | None = None,
    quarter: int | None = None,
) -> TargetFacts | None:
    for t in targets:
        if t.period != period or t.year != year:
            continue
        if period == TargetPeriod.MONTHLY and t.month != month:
            continue
        if period == TargetPeriod.QUARTERLY and t.quarter != quarter:
            continue
        return t
    return None


def stage_distribution(
    deals: list[DealFacts], stages=ALL_STAGES, with_age: bool = True,
) -> list[dict[str, Any]]:
    rows = []
    for stage in stages:
        in_stage = [d for d in deals if d.stage == stage]
        row: dict[str, Any] = {
            "stage": stage.value,
            "count": len(in_stage),
            "value": sum(d.value for d in in_stage),
        }
        if with_age:
            row["avg_days_in_stage"] = (
                round_half_up(sum(d.days_in_stage or 0 for d in in_stage) / len(in_stage))
                if in_stage else 0
            )
        rows.append(row)
    return rows


def rank_of(revenues: dict[UUID, float], user_id: UUID) -> int:
    """1-based position by revenue (descending); 0 when the user is not ranked."""
    ordered = sorted(revenues.items(), key=lambda kv: kv[1], reverse=True)
    for position, (uid, _) in enumerate(ordered, start=1):
        if uid == user_id:
            return position
    return 0


def _revenue_block(
    won: list[DealFacts], targets: list[TargetFacts], now: datetime,
) -> tuple[dict[str, Any], dict[str, TargetFacts | None]]:
    now = as_utc(now)
    year, month, quarter = now.year, now.month, quarter_of(now.month)
    prev_year, prev_month = previous_month(year, month)

    current = revenue_in_month(won, year, month)
    previous = revenue_in_month(won, prev_year, prev_month)
    quarterly = revenue_in_quarter(won, year, quarter)
    yearly = revenue_in_year(won, year)

    found = {
        "monthly": find_target(targets, TargetPeriod.MONTHLY, year, month=month),
        "quarterly": find_target(targets, TargetPeriod.QUARTERLY, year, quarter=quarter),
        "yearly": find_target(targets, TargetPeriod.YEARLY, year),
    }
    monthly_target = found["monthly"].target_value if found["monthly"] else 0.0
    block = {
        "current": current,
        "previous": previous,
        "growth": growth_rate(current, previous),
        "target": monthly_target,
        "achievement": achievement_rate(current, monthly_target),
        "quarterly": quarterly,
        "quarterly_target": found["quarterly"].target_value if found["quarterly"] else 0.0,
        "yearly": yearly,
        "yearly_target": found["yearly"].target_value if found["yearly"] else 0.0,
    }
    return block, found


# ─── Team KPIs ───────────────────────────────────────────────────

def performer_stats(person: PerformerFacts, deals: list[DealFacts]) -> dict[str, Any]:
    own = [d for d in deals if d.owner_id == person.user_id]
    won, lost, _ = split_by_outcome(own)
    return {
        "user_id": str(person.user_id),
        "name": person.name,
        "email": person.email,
        "revenue": sum(d.value for d in won),
        "deals_won": len(won),
        "deals_lost": len(lost),
        "conversion_rate": conversion_rate(len(won), len(lost)),
        "avg_deal_size": average_deal_size(won),
    }


def compute_team_kpis(
    deals: list[DealFacts],
    agents: list[PerformerFacts],
    targets: list[TargetFacts],
    now: datetime,
) -> dict[str, Any]:
    """Team-wide KPI payload. `targets` may mix team and agent rows."""
    now = as_utc(now)
    won, lost, active = split_by_outcome(deals)
    team_targets = [t for t in targets if t.user_id is None]
    revenue, _ = _revenue_block(won, team_targets, now)

    performers = sorted(
        (performer_stats(a, deals) for a in agents),
        key=lambda p: p["revenue"],
        reverse=True,
    )

    horizon = now + timedelta(days=FORECAST_DAYS)
    upcoming = [
        d for d in active
        if d.expected_close_date and as_utc(d.expected_close_date) <= horizon
    ]

    return {
        "revenue": revenue,
        "pipeline": {
            "total_value": sum(d.value for d in active),
            "weighted_value": sum(d.weighted_value for d in active),
            "deal_count": len(active),
            "average_deal_size": average_deal_size(won),
            "conversion_rate": conversion_rate(len(won), len(lost)),
        },
        "deals_by_stage": stage_distribution(deals),
        "top_performers": performers[:TOP_PERFORMERS],
        "velocity": {"avg_deal_cycle": average_deal_cycle(won)},
        "forecast": {
            "next_90_days": sum(d.weighted_value for d in upcoming),
            "deal_count": len(upcoming),
        },
        "summary": {
            "total_deals": len(deals),
            "won_deals": len(won),
            "lost_deals": len(lost),
            "active_deals": len(active),
        },
    }


# ─── Agent KPIs ──────────────────────────────────────────────────

def compute_agent_kpis(
    agent: PerformerFacts,
    deals: list[DealFacts],
    targets: list[TargetFacts],
    yearly_revenue_by_agent: dict[UUID, float],
    customer_statuses: list[CustomerStatus],
    now: datetime,
) -> dict[str, Any]:
    """KPI payload for one agent; `deals` are the deals the agent owns."""
    now = as_utc(now)
    won, lost, active = split_by_outcome(deals)
    revenue, found = _revenue_block(won, targets, now)
    revenue["rank"] = rank_of(yearly_revenue_by_agent, agent.user_id)

    soon = now + timedelta(days=CLOSING_SOON_DAYS)
    closing = [
        d for d in active
        if d.expected_close_date and now <= as_utc(d.expected_close_date) <= soon
    ]

    return {
        "user": {
            "id": str(agent.user_id),
            "name": agent.name,
            "email": agent.email,
        },
        "revenue": revenue,
        "pipeline": {
            "total_value": sum(d.value for d in active),
            "weighted_value": sum(d.weighted_value for d in active),
            "deal_count": len(active),
            "hot_deals": sum(1 for d in active if d.probability >= HOT_DEAL_PROBABILITY),
        },
        "deals_by_stage": stage_distribution(deals, OPEN_STAGES, with_age=False),
        "performance": {
            "deals_won": len(won),
            "deals_lost": len(lost),
            "conversion_rate": conversion_rate(len(won), len(lost)),
            "avg_deal_size": average_deal_size(won),
            "avg_deal_cycle": average_deal_cycle(won),
        },
        "upcoming": {
            "deals_closing_this_week": len(closing),
            "deals_closing_this_week_value": sum(d.value for d in closing),
        },
        "customers": {
            "total": len(customer_statuses),
            "active": customer_statuses.count(CustomerStatus.CUSTOMER),
            "prospects": customer_statuses.count(CustomerStatus.PROSPECT),
            "leads": customer_statuses.count(CustomerStatus.LEAD),
        },
        "targets": {
            period: target.to_dict() if target else None
            for period, target in found.items()
        },
    }
