"""Customer Routes - contact search, creation (with inline company) and details.

Invariants:
    - Search matches name, free-text company, email and the linked company's name,
      case-insensitively
    - Creating customers is rate limited (create_customer limiter, 15 / min)
    - Deleting needs the creator or an exempt role
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.api.routes.deals import deal_payload
from clarity_crm.core.authorization import CurrentUser
from clarity_crm.core.date_ranges import utc_now
from clarity_crm.core.domain_types import CustomerStatus
from clarity_crm.infrastructure.database import get_db
from clarity_crm.infrastructure.rate_limiter import create_customer_limiter
from clarity_crm.schemas.activity import ActivityResponse
from clarity_crm.schemas.call_note import CallNoteResponse
from clarity_crm.schemas.customer import (
    CustomerCreate, CustomerListItem, CustomerResponse, CustomerUpdate,
)
from clarity_crm.schemas.task import TaskResponse
from clarity_crm.services import customer_service

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("", response_model=list[CustomerListItem])
async def list_customers(
    customer_status: CustomerStatus | None = Query(None, alias="status"),
    assigned_to: UUID | None = Query(None, alias="assignedTo"),
    search: str | None = Query(None, max_length=200),
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    customers = await customer_service.list_customers(
        db, customer_status, assigned_to, search,
    )
    counts = await customer_service.related_counts(db, [c.id for c in customers])
    return [
        CustomerListItem(
            **CustomerResponse.model_validate(c).model_dump(), counts=counts[c.id],
        )
        for c in customers
    ]


@router.post(
    "", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_customer_limiter)],
)
async def create_customer(
    body: CustomerCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await customer_service.create_customer_with_company(db, user, body)


@router.get("/{customer_id}")
async def get_customer(
    customer_id: UUID,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    detail = await customer_service.get_customer_detail(db, customer_id)
    now = utc_now()
    return {
        **CustomerResponse.model_validate(detail["customer"]).model_dump(mode="json"),
        "activities": [
            ActivityResponse.model_validate(a).model_dump(mode="json")
            for a in detail["activities"]
        ],
        "call_notes": [
            CallNoteResponse.model_validate(c).model_dump(mode="json")
            for c in detail["call_notes"]
        ],
        "tasks": [
            TaskResponse.model_validate(t).model_dump(mode="json") for t in detail["tasks"]
        ],
        "deals": [deal_payload(d, now).model_dump(mode="json") for d in detail["deals"]],
        "counts": detail["counts"],
    }


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: UUID,
    body: CustomerUpdate,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await customer_service.update_customer(db, customer_id, body)


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await customer_service.delete_customer(db, user, customer_id)
    return {"message": "Customer deleted successfully"}
