"""Company Routes - account listing with related counts, CRUD and details."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.api.routes.deals import deal_payload
from clarity_crm.core.authorization import CurrentUser
from clarity_crm.core.date_ranges import utc_now
from clarity_crm.core.domain_types import CompanySize, CompanyStatus, Industry
from clarity_crm.infrastructure.database import get_db
from clarity_crm.schemas.company import (
    CompanyCreate, CompanyListItem, CompanyResponse, CompanyUpdate,
)
from clarity_crm.schemas.customer import CustomerResponse
from clarity_crm.services import company_service

router = APIRouter(prefix="/api/companies", tags=["companies"])


@router.get("", response_model=list[CompanyListItem])
async def list_companies(
    industry: Industry | None = Query(None),
    size: CompanySize | None = Query(None),
    company_status: CompanyStatus | None = Query(None, alias="status"),
    assigned_to: UUID | None = Query(None, alias="assignedTo"),
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    companies = await company_service.list_companies(
        db, industry, size, company_status, assigned_to,
    )
    counts = await company_service.related_counts(db, [c.id for c in companies])
    return [
        CompanyListItem(
            **CompanyResponse.model_validate(c).model_dump(), counts=counts[c.id],
        )
        for c in companies
    ]


@router.post("", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    body: CompanyCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await company_service.create_company(db, user, body)


@router.get("/{company_id}")
async def get_company(
    company_id: UUID,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    detail = await company_service.get_company_detail(db, company_id)
    now = utc_now()
    return {
        **CompanyResponse.model_validate(detail["company"]).model_dump(mode="json"),
        "customers": [
            CustomerResponse.model_validate(c).model_dump(mode="json")
            for c in detail["customers"]
        ],
        "deals": [deal_payload(d, now).model_dump(mode="json") for d in detail["deals"]],
        "counts": detail["counts"],
    }


@router.patch("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: UUID,
    body: CompanyUpdate,
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await company_service.update_company(db, company_id, body)


@router.delete("/{company_id}")
async def delete_company(
    company_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await company_service.delete_company(db, user, company_id)
    return {"message": "Company deleted successfully"}
