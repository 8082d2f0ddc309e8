"""User Service - accounts, profile updates and per-user work summaries.

Invariants:
    - Passwords are stored as bcrypt hashes only
    - Email uniqueness is checked before insert (409 DUPLICATE_RECORD); the
      unique index remains the final guard
    - Non-leads may only change SELF_EDITABLE_FIELDS on their own profile
    - A lead cannot delete or deactivate their own account
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import (
    CurrentUser, can_manage_users, require_user_details_access,
)
from clarity_crm.core.errors import (
    BadRequestError, DuplicateRecordError, ForbiddenError,
)
from clarity_crm.infrastructure.database import run_in_transaction
from clarity_crm.infrastructure.security import hash_password
from clarity_crm.models.activity import Activity
from clarity_crm.models.call_note import CallNote
from clarity_crm.models.company import Company
from clarity_crm.models.customer import Customer
from clarity_crm.models.deal import Deal
from clarity_crm.models.deal_note import DealNote
from clarity_crm.models.target import Target
from clarity_crm.models.task import Task
from clarity_crm.models.team import Team
from clarity_crm.models.user import User
from clarity_crm.models.user_capacity import UserCapacity
from clarity_crm.schemas.capacity import CapacitySettingsInput
from clarity_crm.schemas.user import SELF_EDITABLE_FIELDS, UserCreate, UserUpdate
from clarity_crm.services.capacity_service import apply_capacity_settings
from clarity_crm.services.references import (
    Reference, count_by, get_or_404, validate_references,
)

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10

# (model, column) pairs pointing at a user that are cleared on delete
_USER_REFERENCES = (
    (Task, "assignee_id"),
    (Task, "created_by_id"),
    (Customer, "created_by"),
    (Customer, "assigned_to"),
    (Company, "created_by"),
    (Company, "assigned_to"),
    (Deal, "owner_id"),
    (Deal, "created_by"),
    (DealNote, "user_id"),
)
# Rows owned outright by the user, removed with it
_USER_OWNED = (Activity, CallNote, Target)


async def _ensure_email_free(db: AsyncSession, email: str, exclude: UUID | None = None):
    query = select(func.count()).select_from(User).where(func.lower(User.email) == email)
    if exclude:
        query = query.where(User.id != exclude)
    if await db.scalar(query):
        raise DuplicateRecordError("A user with this email already exists", field="email")


async def list_users(
    db: AsyncSession, team_id: UUID | None = None, is_active: bool | None = None,
) -> list[User]:
    query = select(User).order_by(User.name)
    if team_id:
        query = query.where(User.team_id == team_id)
    if is_active is not None:
        query = query.where(User.is_active.is_(is_active))
    result = await db.execute(query)
    return list(result.scalars().all())


async def work_counts(db: AsyncSession, user_ids: list[UUID]) -> dict[UUID, dict[str, int]]:
    tasks = await count_by(db, Task.assignee_id, user_ids)
    activities = await count_by(db, Activity.user_id, user_ids)
    call_notes = await count_by(db, CallNote.user_id, user_ids)
    return {
        uid: {
            "tasks_assigned": tasks[uid],
            "activities": activities[uid],
            "call_notes": call_notes[uid],
        }
        for uid in user_ids
    }


async def create_user(db: AsyncSession, body: UserCreate) -> User:
    await _ensure_email_free(db, body.email)
    await validate_references(db, Reference("team_id", Team, body.team_id, "Team"))

    async def _operation() -> User:
        user = User(
            email=body.email,
            name=body.name,
            password_hash=hash_password(body.password),
            role=body.role.value,
            team_id=body.team_id,
            avatar=str(body.avatar) if body.avatar else None,
            is_active=True,
            capacity=apply_capacity_settings(
                UserCapacity(), body.capacity or CapacitySettingsInput(),
            ),
        )
        db.add(user)
        await db.flush()
        return user

    user = await run_in_transaction(db, _operation, "Failed to create user")
    await db.refresh(user)
    logger.info("User created", extra={"resource_id": str(user.id)})
    return user


async def get_user_detail(
    db: AsyncSession, caller: CurrentUser, user_id: UUID,
) -> dict:
    require_user_details_access(caller, user_id)
    user = await get_or_404(db, User, user_id, "User")

    async def _recent(model, column):
        rows = await db.execute(
            select(model)
            .where(column == user.id)
            .order_by(model.created_at.desc())
            .limit(RECENT_LIMIT),
        )
        return list(rows.scalars().all())

    return {
        "user": user,
        "tasks_assigned": await _recent(Task, Task.assignee_id),
        "activities": await _recent(Activity, Activity.user_id),
        "call_notes": await _recent(CallNote, CallNote.user_id),
        "counts": (await work_counts(db, [user.id]))[user.id],
    }


async def update_user(
    db: AsyncSession, caller: CurrentUser, user_id: UUID, body: UserUpdate,
) -> User:
    user = await get_or_404(db, User, user_id, "User")
    changes = body.changes()

    if not can_manage_users(caller):
        if caller.id != user.id:
            raise ForbiddenError("Forbidden: you can only edit your own profile")
        blocked = sorted(set(changes) - SELF_EDITABLE_FIELDS)
        if blocked:
            raise ForbiddenError(
                f"Forbidden: you cannot change {', '.join(blocked)}",
            )
    elif caller.id == user.id and changes.get("is_active") is False:
        raise BadRequestError("You cannot deactivate your own account")

    if "email" in changes:
        await _ensure_email_free(db, changes["email"], exclude=user.id)
    await validate_references(db, Reference("team_id", Team, changes.get("team_id"), "Team"))

    if "password" in changes:
        user.password_hash = hash_password(changes.pop("password"))
    if changes.get("role") is not None:
        changes["role"] = changes["role"].value
    if changes.get("avatar") is not None:
        changes["avatar"] = str(changes["avatar"])
    for name, value in changes.items():
        setattr(user, name, value)
    await db.commit()
    await db.refresh(user)
    logger.info(
        "User updated",
        extra={"user_id": str(caller.id), "resource_id": str(user.id)},
    )
    return user


async def delete_user(db: AsyncSession, caller: CurrentUser, user_id: UUID) -> None:
    if caller.id == user_id:
        raise BadRequestError("You cannot delete your own account")
    user = await get_or_404(db, User, user_id, "User")

    async def _operation() -> None:
        for model, column in _USER_REFERENCES:
            rows = await db.execute(select(model).where(getattr(model, column) == user.id))
            for row in rows.scalars().all():
                setattr(row, column, None)
        for model in _USER_OWNED:
            rows = await db.execute(select(model).where(model.user_id == user.id))
            for row in rows.scalars().all():
                await db.delete(row)
        await db.flush()
        await db.delete(user)

    await run_in_transaction(db, _operation, "Failed to delete user")
    logger.info(
        "User deleted",
        extra={"user_id": str(caller.id), "resource_id": str(user_id)},
    )
