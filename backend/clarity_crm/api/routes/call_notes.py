"""Call Note Routes - paged call notes and CRUD (PATCH also stores ai_summary)."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import (
    Pagination, get_current_user, get_pagination, parse_datetime_param,
)
from clarity_crm.core.authorization import CurrentUser
from clarity_crm.infrastructure.database import get_db
from clarity_crm.models.call_note import CallNote
from clarity_crm.schemas.call_note import CallNoteCreate, CallNoteResponse, CallNoteUpdate
from clarity_crm.services import call_note_service
from clarity_crm.services.references import get_or_404

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/call-notes", tags=["call-notes"])


@router.get("", response_model=list[CallNoteResponse])
async def list_call_notes(
    response: Response,
    user_id: UUID | None = Query(None, alias="userId"),
    start: str | None = Query(None),
    end: str | None = Query(None),
    pagination: Pagination = Depends(get_pagination),
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notes, total = await call_note_service.list_call_notes(
        db,
        user_id,
        parse_datetime_param(start, "start"),
        parse_datetime_param(end, "end"),
        pagination.offset,
        pagination.limit,
    )
    response.headers["X-Total-Count"] = str(total)
    return notes


@router.post("", response_model=CallNoteResponse, status_code=status.HTTP_201_CREATED)
async def create_call_note(
    body: CallNoteCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await call_note_service.create_call_note(db, user, body)


@router.get("/{note_id}", response_model=CallNoteResponse)
async def get_call_note(
    note_id: UUID,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_or_404(db, CallNote, note_id, "Call note")


@router.patch("/{note_id}", response_model=CallNoteResponse)
async def update_call_note(
    note_id: UUID,
    body: CallNoteUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await call_note_service.update_call_note(db, user, note_id, body)


@router.delete("/{note_id}")
async def delete_call_note(
    note_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await call_note_service.delete_call_note(db, user, note_id)
    logger.info("Call note deleted", extra={"resource_id": str(note_id)})
    return {"message": "Call note deleted successfully"}
