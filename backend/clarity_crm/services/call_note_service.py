"""Call Note Service - notes taken during client calls."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import CurrentUser, is_exempt, require_ownership
from clarity_crm.core.errors import ForbiddenError
from clarity_crm.models.call_note import CallNote
from clarity_crm.models.customer import Customer
from clarity_crm.models.user import User
from clarity_crm.schemas.call_note import CallNoteCreate, CallNoteUpdate
from clarity_crm.services.references import Reference, get_or_404, validate_references

logger = logging.getLogger(__name__)


async def list_call_notes(
    db: AsyncSession,
    user_id: UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    offset: int = 0,
    limit: int | None = None,
) -> tuple[list[CallNote], int]:
    conditions = []
    if user_id:
        conditions.append(CallNote.user_id == user_id)
    if start:
        conditions.append(CallNote.created_at >= start)
    if end:
        conditions.append(CallNote.created_at <= end)

    total = await db.scalar(
        select(func.count()).select_from(CallNote).where(*conditions),
    ) or 0
    query = (
        select(CallNote).where(*conditions)
        .order_by(CallNote.created_at.desc()).offset(offset)
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def create_call_note(
    db: AsyncSession, user: CurrentUser, body: CallNoteCreate,
) -> CallNote:
    owner_id = body.user_id or user.id
    if owner_id != user.id and not is_exempt(user):
        raise ForbiddenError("Forbidden: you can only add your own call notes")
    await validate_references(
        db,
        Reference("user_id", User, owner_id, "User"),
        Reference("customer_id", Customer, body.customer_id, "Customer"),
    )
    note = CallNote(**{**body.model_dump(), "user_id": owner_id})
    db.add(note)
    await db.commit()
    await db.refresh(note)
    logger.info(
        "Call note created",
        extra={"user_id": str(user.id), "resource_id": str(note.id)},
    )
    return note


async def update_call_note(
    db: AsyncSession, user: CurrentUser, note_id: UUID, body: CallNoteUpdate,
) -> CallNote:
    note = await get_or_404(db, CallNote, note_id, "Call note")
    require_ownership(user, note.user_id)
    changes = body.changes()
    await validate_references(
        db, Reference("customer_id", Customer, changes.get("customer_id"), "Customer"),
    )
    for name, value in changes.items():
        setattr(note, name, value)
    await db.commit()
    await db.refresh(note)
    return note


async def delete_call_note(db: AsyncSession, user: CurrentUser, note_id: UUID) -> None:
    note = await get_or_404(db, CallNote, note_id, "Call note")
    require_ownership(user, note.user_id)
    await db.delete(note)
    await db.commit()
