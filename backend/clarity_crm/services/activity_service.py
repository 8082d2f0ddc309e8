"""Activity Service - logged interactions (calls, meetings, emails, notes).

Invariants:
    - user_id defaults to the caller; logging for someone else needs an exempt role
    - Only the owning user or an exempt role may change or delete an activity
    - Lists are newest first and paged; the total ignores paging
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import CurrentUser, is_exempt, require_ownership
from clarity_crm.core.date_ranges import DateRange
from clarity_crm.core.domain_types import ActivityType
from clarity_crm.core.errors import ForbiddenError
from clarity_crm.models.activity import Activity
from clarity_crm.models.company import Company
from clarity_crm.models.customer import Customer
from clarity_crm.models.deal import Deal
from clarity_crm.models.task import Task
from clarity_crm.models.user import User
from clarity_crm.schemas.activity import ActivityCreate, ActivityUpdate
from clarity_crm.services.references import Reference, get_or_404, validate_references

logger = logging.getLogger(__name__)


async def list_activities(
    db: AsyncSession,
    user_id: UUID | None = None,
    activity_type: ActivityType | None = None,
    window: DateRange | None = None,
    offset: int = 0,
    limit: int | None = None,
) -> tuple[list[Activity], int]:
    conditions = []
    if user_id:
        conditions.append(Activity.user_id == user_id)
    if activity_type:
        conditions.append(Activity.type == activity_type.value)
    if window:
        conditions += [Activity.created_at >= window.start, Activity.created_at <= window.end]

    total = await db.scalar(
        select(func.count()).select_from(Activity).where(*conditions),
    ) or 0
    query = (
        select(Activity).where(*conditions)
        .order_by(Activity.created_at.desc()).offset(offset)
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def create_activity(
    db: AsyncSession, user: CurrentUser, body: ActivityCreate,
) -> Activity:
    owner_id = body.user_id or user.id
    if owner_id != user.id and not is_exempt(user):
        raise ForbiddenError("Forbidden: you can only log your own activities")
    await validate_references(
        db,
        Reference("user_id", User, owner_id, "User"),
        Reference("customer_id", Customer, body.customer_id, "Customer"),
        Reference("company_id", Company, body.company_id, "Company"),
        Reference("deal_id", Deal, body.deal_id, "Deal"),
        Reference("task_id", Task, body.task_id, "Task"),
    )
    data = body.model_dump()
    data["type"] = body.type.value
    data["user_id"] = owner_id
    activity = Activity(**data)
    db.add(activity)
    await db.commit()
    await db.refresh(activity)
    logger.info(
        "Activity logged",
        extra={"user_id": str(user.id), "resource_id": str(activity.id)},
    )
    return activity


async def update_activity(
    db: AsyncSession, user: CurrentUser, activity_id: UUID, body: ActivityUpdate,
) -> Activity:
    activity = await get_or_404(db, Activity, activity_id, "Activity")
    require_ownership(user, activity.user_id)
    changes = body.changes()
    if changes.get("type") is not None:
        changes["type"] = changes["type"].value
    for name, value in changes.items():
        setattr(activity, name, value)
    await db.commit()
    await db.refresh(activity)
    return activity


async def delete_activity(db: AsyncSession, user: CurrentUser, activity_id: UUID) -> None:
    activity = await get_or_404(db, Activity, activity_id, "Activity")
    require_ownership(user, activity.user_id)
    await db.delete(activity)
    await db.commit()
    logger.info(
        "Activity deleted",
        extra={"user_id": str(user.id), "resource_id": str(activity_id)},
    )
