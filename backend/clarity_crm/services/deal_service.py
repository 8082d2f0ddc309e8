"""Deal Service - pipeline CRUD with multi-step writes in single transactions.

Invariants:
    - create_deal_with_relations: placeholder customer (when needed) and deal
      are created together or not at all
    - update_deal_with_activity: deal change and its activity log commit together
    - delete_deal_with_cleanup: activities, notes and the deal go together;
      tasks pointing at the deal are detached, never deleted
    - A stage change resets stage_changed_at and days_in_stage; closing sets
      actual_close_date and total_duration, reopening clears them
    - probability takes the stage default only on create; updates never rewrite it

Design Decisions:
    - days_in_stage is derived live from stage_changed_at for open deals, so it
      never goes stale between stage changes
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import CurrentUser, is_exempt
from clarity_crm.core.date_ranges import DateRange, as_utc, utc_now
from clarity_crm.core.domain_types import (
    CLOSED_STAGES, STAGE_PROBABILITY, ActivityType, CustomerStatus, DealStage,
)
from clarity_crm.core.errors import ForbiddenError, ValidationFailedError
from clarity_crm.core.kpis import DealFacts
from clarity_crm.infrastructure.database import run_in_transaction
from clarity_crm.models.activity import Activity
from clarity_crm.models.company import Company
from clarity_crm.models.customer import Customer
from clarity_crm.models.deal import Deal
from clarity_crm.models.deal_note import DealNote
from clarity_crm.models.task import Task
from clarity_crm.models.user import User
from clarity_crm.schemas.deal import DealCreate, DealNoteCreate, DealUpdate
from clarity_crm.services.references import Reference, get_or_404, validate_references

logger = logging.getLogger(__name__)

PLACEHOLDER_CUSTOMER_NAME = "Deal Contact"


# ─── Derived values ──────────────────────────────────────────────

def _days_between(start: datetime, end: datetime) -> int:
    return max(0, (as_utc(end) - as_utc(start)).days)


def live_days_in_stage(deal: Deal, now: datetime | None = None) -> int:
    if DealStage(deal.stage) in CLOSED_STAGES:
        return deal.days_in_stage
    return _days_between(deal.stage_changed_at, now or utc_now())


def to_facts(deal: Deal, now: datetime | None = None) -> DealFacts:
    return DealFacts(
        id=deal.id,
        owner_id=deal.owner_id,
        value=deal.value,
        probability=deal.probability,
        stage=DealStage(deal.stage),
        created_at=as_utc(deal.created_at),
        actual_close_date=as_utc(deal.actual_close_date) if deal.actual_close_date else None,
        expected_close_date=(
            as_utc(deal.expected_close_date) if deal.expected_close_date else None
        ),
        days_in_stage=live_days_in_stage(deal, now),
        total_duration=deal.total_duration,
    )


def _require_deal_access(user: CurrentUser, deal: Deal, action: str) -> None:
    if is_exempt(user) or user.id in (deal.owner_id, deal.created_by):
        return
    raise ForbiddenError(f"Forbidden: you cannot {action} this deal")


def _deal_references(customer_id=None, company_id=None, owner_id=None) -> list[Reference]:
    return [
        Reference("customer_id", Customer, customer_id, "Customer"),
        Reference("company_id", Company, company_id, "Company"),
        Reference("owner_id", User, owner_id, "Owner"),
    ]


# ─── Queries ─────────────────────────────────────────────────────

async def list_deals(
    db: AsyncSession,
    stage: DealStage | None = None,
    owner_id: UUID | None = None,
    window: DateRange | None = None,
) -> list[Deal]:
    """Deals newest first; open deals are dated by creation, closed by close date."""
    query = select(Deal).order_by(Deal.created_at.desc())
    if stage:
        query = query.where(Deal.stage == stage.value)
    if owner_id:
        query = query.where(Deal.owner_id == owner_id)
    if window:
        query = query.where(or_(
            and_(
                Deal.actual_close_date.is_(None),
                Deal.created_at >= window.start,
                Deal.created_at <= window.end,
            ),
            and_(
                Deal.actual_close_date.is_not(None),
                Deal.actual_close_date >= window.start,
                Deal.actual_close_date <= window.end,
            ),
        ))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_deal_detail(db: AsyncSession, deal_id: UUID) -> tuple[Deal, list[DealNote]]:
    deal = await get_or_404(db, Deal, deal_id, "Deal")
    notes = await db.execute(
        select(DealNote)
        .where(DealNote.deal_id == deal.id)
        .order_by(DealNote.created_at.desc()),
    )
    return deal, list(notes.scalars().all())


# ─── Writes ──────────────────────────────────────────────────────

async def create_customer_placeholder(
    db: AsyncSession, company_id: UUID, created_by: UUID,
) -> UUID:
    """First customer of the company, or a new PROSPECT placeholder contact."""
    existing = await db.scalar(
        select(Customer.id)
        .where(Customer.company_id == company_id)
        .order_by(Customer.created_at)
        .limit(1),
    )
    if existing:
        return existing
    company_name = await db.scalar(select(Company.name).where(Company.id == company_id))
    placeholder = Customer(
        name=PLACEHOLDER_CUSTOMER_NAME,
        status=CustomerStatus.PROSPECT.value,
        company=company_name,
        company_id=company_id,
        created_by=created_by,
    )
    db.add(placeholder)
    await db.flush()
    return placeholder.id


async def create_deal_with_relations(
    db: AsyncSession, user: CurrentUser, body: DealCreate,
) -> Deal:
    await validate_references(db, *_deal_references(
        body.customer_id, body.company_id, body.owner_id,
    ))
    now = utc_now()

    async def _operation() -> Deal:
        customer_id = body.customer_id
        if customer_id is None and body.company_id is not None:
            customer_id = await create_customer_placeholder(db, body.company_id, user.id)
        closed = body.stage in CLOSED_STAGES
        deal = Deal(
            name=body.name,
            description=body.description,
            value=body.value,
            probability=(
                body.probability if body.probability is not None
                else STAGE_PROBABILITY[body.stage]
            ),
            stage=body.stage.value,
            source=body.source.value if body.source else None,
            customer_id=customer_id,
            company_id=body.company_id,
            owner_id=body.owner_id or user.id,
            created_by=user.id,
            expected_close_date=body.expected_close_date,
            actual_close_date=now if closed else None,
            stage_changed_at=now,
            days_in_stage=0,
            total_duration=0 if closed else None,
        )
        db.add(deal)
        await db.flush()
        return deal

    deal = await run_in_transaction(db, _operation, "Failed to create deal")
    await db.refresh(deal)
    logger.info(
        "Deal created",
        extra={"user_id": str(user.id), "resource_id": str(deal.id)},
    )
    return deal


def _stage_changes(
    deal: Deal, new_stage: DealStage, changes: dict[str, Any], now: datetime,
) -> dict[str, Any]:
    """Column updates implied by moving `deal` into `new_stage`."""
    updates: dict[str, Any] = {
        "stage": new_stage.value,
        "stage_changed_at": now,
        "days_in_stage": 0,
    }
    if new_stage in CLOSED_STAGES:
        closed_at = changes.get("actual_close_date") or now
        updates["actual_close_date"] = closed_at
        updates["total_duration"] = _days_between(deal.created_at, closed_at)
    else:
        updates["actual_close_date"] = None
        updates["total_duration"] = None
        updates["lost_reason"] = changes.get("lost_reason")
    return updates


async def update_deal_with_activity(
    db: AsyncSession, user: CurrentUser, deal_id: UUID, body: DealUpdate,
) -> Deal:
    deal = await get_or_404(db, Deal, deal_id, "Deal")
    _require_deal_access(user, deal, "edit")

    changes = body.changes()
    await validate_references(db, *_deal_references(
        changes.get("customer_id"), changes.get("company_id"), changes.get("owner_id"),
    ))
    now = utc_now()
    old_stage = DealStage(deal.stage)
    new_stage = changes.pop("stage", None)
    if "source" in changes and changes["source"] is not None:
        changes["source"] = changes["source"].value

    updates = dict(changes)
    stage_changed = new_stage is not None and new_stage != old_stage
    if stage_changed:
        updates.update(_stage_changes(deal, new_stage, changes, now))

    async def _operation() -> Deal:
        for name, value in updates.items():
            setattr(deal, name, value)
        if stage_changed:
            title = f"Deal stage changed: {deal.name}"
            description = f"Stage moved from {old_stage.value} to {new_stage.value}"
        else:
            title = f"Deal updated: {deal.name}"
            description = "Updated fields: " + ", ".join(sorted(updates)) if updates else None
        db.add(Activity(
            type=ActivityType.NOTE.value,
            title=title,
            description=description,
            user_id=user.id,
            deal_id=deal.id,
            customer_id=deal.customer_id,
            company_id=deal.company_id,
        ))
        await db.flush()
        return deal

    await run_in_transaction(db, _operation, "Failed to update deal")
    await db.refresh(deal)
    return deal


async def delete_deal_with_cleanup(
    db: AsyncSession, user: CurrentUser, deal_id: UUID,
) -> None:
    deal = await get_or_404(db, Deal, deal_id, "Deal")
    _require_deal_access(user, deal, "delete")

    async def _operation() -> None:
        for model in (Activity, DealNote):
            rows = await db.execute(select(model).where(model.deal_id == deal.id))
            for row in rows.scalars().all():
                await db.delete(row)
        tasks = await db.execute(select(Task).where(Task.deal_id == deal.id))
        for task in tasks.scalars().all():
            task.deal_id = None
        await db.delete(deal)

    await run_in_transaction(db, _operation, "Failed to delete deal")
    logger.info(
        "Deal deleted",
        extra={"user_id": str(user.id), "resource_id": str(deal_id)},
    )


async def add_note(
    db: AsyncSession, user: CurrentUser, deal_id: UUID, body: DealNoteCreate,
) -> DealNote:
    deal = await get_or_404(db, Deal, deal_id, "Deal")
    note = DealNote(deal_id=deal.id, user_id=user.id, content=body.content.strip())
    if not note.content:
        raise ValidationFailedError(
            [{"field": "content", "message": "Note content cannot be empty"}],
        )
    db.add(note)
    await db.commit()
    await db.refresh(note)
    return note
