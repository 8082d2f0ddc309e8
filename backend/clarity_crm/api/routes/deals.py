"""Deal Routes - pipeline listing with stats, deal CRUD and deal notes.

Invariants:
    - days_in_stage in every response is computed at read time for open deals
    - Writes (POST/PATCH/DELETE) go through the strict limiter (10 / min)
    - deal_payload exported for reuse by the customer and company routes
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user, time_window
from clarity_crm.core.authorization import CurrentUser
from clarity_crm.core.date_ranges import DateRange, utc_now
from clarity_crm.core.domain_types import DealStage
from clarity_crm.core.kpis import compute_deal_stats
from clarity_crm.infrastructure.database import get_db
from clarity_crm.infrastructure.rate_limiter import strict_limiter
from clarity_crm.models.deal import Deal
from clarity_crm.schemas.deal import (
    DealCreate, DealNoteCreate, DealNoteResponse, DealResponse, DealUpdate,
)
from clarity_crm.services import deal_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/deals", tags=["deals"])


def deal_payload(deal: Deal, now: datetime | None = None) -> DealResponse:
    response = DealResponse.model_validate(deal)
    response.days_in_stage = deal_service.live_days_in_stage(deal, now)
    return response


@router.get("")
async def list_deals(
    stage: DealStage | None = Query(None),
    owner_id: UUID | None = Query(None, alias="ownerId"),
    window: DateRange | None = Depends(time_window),
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    now = utc_now()
    deals = await deal_service.list_deals(db, stage, owner_id, window)
    return {
        "deals": [deal_payload(d, now) for d in deals],
        "stats": compute_deal_stats([deal_service.to_facts(d, now) for d in deals]),
    }


@router.post(
    "", response_model=DealResponse, status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(strict_limiter)],
)
async def create_deal(
    body: DealCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deal = await deal_service.create_deal_with_relations(db, user, body)
    return deal_payload(deal)


@router.get("/{deal_id}")
async def get_deal(
    deal_id: UUID,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deal, notes = await deal_service.get_deal_detail(db, deal_id)
    return {
        **deal_payload(deal).model_dump(mode="json"),
        "notes": [DealNoteResponse.model_validate(n).model_dump(mode="json") for n in notes],
        "note_count": len(notes),
    }


@router.patch(
    "/{deal_id}", response_model=DealResponse,
    dependencies=[Depends(strict_limiter)],
)
async def update_deal(
    deal_id: UUID,
    body: DealUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    deal = await deal_service.update_deal_with_activity(db, user, deal_id, body)
    return deal_payload(deal)


@router.delete("/{deal_id}", dependencies=[Depends(strict_limiter)])
async def delete_deal(
    deal_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await deal_service.delete_deal_with_cleanup(db, user, deal_id)
    return {"message": "Deal deleted successfully"}


@router.post(
    "/{deal_id}/notes", response_model=DealNoteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_deal_note(
    deal_id: UUID,
    body: DealNoteCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await deal_service.add_note(db, user, deal_id, body)
