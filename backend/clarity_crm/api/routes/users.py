"""User Routes - team member administration and profile details.

Invariants:
    - Listing, creating and deleting users is Sales Lead only
    - Details are visible to a lead or to the user themself
    - Self-service updates are limited to SELF_EDITABLE_FIELDS (see user_service)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.core.authorization import CurrentUser, require_sales_lead
from clarity_crm.infrastructure.database import get_db
from clarity_crm.schemas.activity import ActivityResponse
from clarity_crm.schemas.call_note import CallNoteResponse
from clarity_crm.schemas.task import TaskResponse
from clarity_crm.schemas.user import (
    UserCreate, UserDetailResponse, UserListItem, UserResponse, UserUpdate, WorkCounts,
)
from clarity_crm.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[UserListItem])
async def list_users(
    team_id: UUID | None = Query(None, alias="teamId"),
    is_active: bool | None = Query(None, alias="isActive"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_sales_lead(user)
    users = await user_service.list_users(db, team_id, is_active)
    counts = await user_service.work_counts(db, [u.id for u in users])
    return [
        UserListItem(
            **UserResponse.model_validate(u).model_dump(),
            counts=WorkCounts(**counts[u.id]),
        )
        for u in users
    ]


@router.post("", response_model=UserDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_sales_lead(user)
    return await user_service.create_user(db, body)


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    detail = await user_service.get_user_detail(db, user, user_id)
    return {
        **UserDetailResponse.model_validate(detail["user"]).model_dump(mode="json"),
        "tasks_assigned": [
            TaskResponse.model_validate(t).model_dump(mode="json")
            for t in detail["tasks_assigned"]
        ],
        "activities": [
            ActivityResponse.model_validate(a).model_dump(mode="json")
            for a in detail["activities"]
        ],
        "call_notes": [
            CallNoteResponse.model_validate(c).model_dump(mode="json")
            for c in detail["call_notes"]
        ],
        "counts": detail["counts"],
    }


@router.patch("/{user_id}", response_model=UserDetailResponse)
async def update_user(
    user_id: UUID,
    body: UserUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_user(db, user, user_id, body)


@router.delete("/{user_id}")
async def delete_user(
    user_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require_sales_lead(user)
    await user_service.delete_user(db, user, user_id)
    return {"message": "User deleted successfully"}
