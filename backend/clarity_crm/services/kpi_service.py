"""KPI Service - loads deal, target and customer snapshots for core/kpis.py."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.date_ranges import as_utc, utc_now
from clarity_crm.core.domain_types import CustomerStatus, DealStage, TargetPeriod, UserRole
from clarity_crm.core.kpis import (
    PerformerFacts, TargetFacts, compute_agent_kpis, compute_team_kpis,
    revenue_in_year,
)
from clarity_crm.models.customer import Customer
from clarity_crm.models.deal import Deal
from clarity_crm.models.target import Target
from clarity_crm.models.user import User
from clarity_crm.services.deal_service import to_facts
from clarity_crm.services.references import get_or_404

logger = logging.getLogger(__name__)


def _target_facts(target: Target) -> TargetFacts:
    return TargetFacts(
        id=target.id,
        user_id=target.user_id,
        period=TargetPeriod(target.period),
        year=target.year,
        target_value=target.target_value,
        actual_value=target.actual_value,
        month=target.month,
        quarter=target.quarter,
    )


def _performer(user: User) -> PerformerFacts:
    return PerformerFacts(user_id=user.id, name=user.name, email=user.email)


async def _active_agents(db: AsyncSession) -> list[User]:
    result = await db.execute(
        select(User)
        .where(User.role == UserRole.SALES_AGENT.value, User.is_active.is_(True))
        .order_by(User.name),
    )
    return list(result.scalars().all())


async def _targets(db: AsyncSession, year: int, *conditions) -> list[TargetFacts]:
    result = await db.execute(select(Target).where(Target.year == year, *conditions))
    return [_target_facts(t) for t in result.scalars().all()]


async def team_kpis(db: AsyncSession, now: datetime | None = None) -> dict:
    now = as_utc(now) if now else utc_now()
    deals = (await db.execute(select(Deal))).scalars().all()
    agents = await _active_agents(db)
    targets = await _targets(db, now.year, Target.user_id.is_(None))
    return compute_team_kpis(
        [to_facts(d, now) for d in deals],
        [_performer(a) for a in agents],
        targets,
        now,
    )


async def agent_kpis(db: AsyncSession, agent_id: UUID, now: datetime | None = None) -> dict:
    now = as_utc(now) if now else utc_now()
    agent = await get_or_404(db, User, agent_id, "User")

    own = (await db.execute(select(Deal).where(Deal.owner_id == agent.id))).scalars().all()
    targets = await _targets(db, now.year, Target.user_id == agent.id)

    agents = await _active_agents(db)
    won_rows = await db.execute(
        select(Deal).where(
            Deal.stage == DealStage.CLOSED_WON.value,
            Deal.owner_id.in_([a.id for a in agents]),
        ),
    )
    won_facts = [to_facts(d, now) for d in won_rows.scalars().all()]
    yearly_by_agent = {
        a.id: revenue_in_year([d for d in won_facts if d.owner_id == a.id], now.year)
        for a in agents
    }

    statuses = await db.execute(
        select(Customer.status).where(Customer.assigned_to == agent.id),
    )
    return compute_agent_kpis(
        _performer(agent),
        [to_facts(d, now) for d in own],
        targets,
        yearly_by_agent,
        [CustomerStatus(s) for s in statuses.scalars().all()],
        now,
    )
