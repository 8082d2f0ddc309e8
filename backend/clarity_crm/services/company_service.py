"""Company Service - accounts with their customers and deals."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import CurrentUser, require_ownership
from clarity_crm.core.domain_types import CompanySize, CompanyStatus, Industry
from clarity_crm.infrastructure.database import run_in_transaction
from clarity_crm.models.activity import Activity
from clarity_crm.models.company import Company
from clarity_crm.models.customer import Customer
from clarity_crm.models.deal import Deal
from clarity_crm.models.task import Task
from clarity_crm.models.user import User
from clarity_crm.schemas.company import CompanyCreate, CompanyUpdate
from clarity_crm.services.references import (
    Reference, count_by, get_or_404, validate_references,
)

logger = logging.getLogger(__name__)

_DEPENDENTS = (Customer, Deal, Task, Activity)
_ENUM_COLUMNS = ("industry", "size", "status")


def _enum_values(data: dict) -> dict:
    for name in _ENUM_COLUMNS:
        if data.get(name) is not None:
            data[name] = data[name].value
    return data


async def list_companies(
    db: AsyncSession,
    industry: Industry | None = None,
    size: CompanySize | None = None,
    status: CompanyStatus | None = None,
    assigned_to: UUID | None = None,
) -> list[Company]:
    query = select(Company).order_by(Company.created_at.desc())
    if industry:
        query = query.where(Company.industry == industry.value)
    if size:
        query = query.where(Company.size == size.value)
    if status:
        query = query.where(Company.status == status.value)
    if assigned_to:
        query = query.where(Company.assigned_to == assigned_to)
    result = await db.execute(query)
    return list(result.scalars().all())


async def related_counts(
    db: AsyncSession, company_ids: list[UUID],
) -> dict[UUID, dict[str, int]]:
    customers = await count_by(db, Customer.company_id, company_ids)
    activities = await count_by(db, Activity.company_id, company_ids)
    tasks = await count_by(db, Task.company_id, company_ids)
    deals = await count_by(db, Deal.company_id, company_ids)
    return {
        cid: {
            "customers": customers[cid],
            "activities": activities[cid],
            "tasks": tasks[cid],
            "deals": deals[cid],
        }
        for cid in company_ids
    }


async def create_company(
    db: AsyncSession, user: CurrentUser, body: CompanyCreate,
) -> Company:
    await validate_references(
        db, Reference("assigned_to", User, body.assigned_to, "Assigned user"),
    )
    company = Company(**_enum_values(body.to_columns()), created_by=user.id)
    db.add(company)
    await db.commit()
    await db.refresh(company)
    logger.info(
        "Company created",
        extra={"user_id": str(user.id), "resource_id": str(company.id)},
    )
    return company


async def get_company_detail(db: AsyncSession, company_id: UUID) -> dict:
    company = await get_or_404(db, Company, company_id, "Company")
    customers = await db.execute(
        select(Customer)
        .where(Customer.company_id == company.id)
        .order_by(Customer.name),
    )
    deals = await db.execute(
        select(Deal)
        .where(Deal.company_id == company.id)
        .order_by(Deal.created_at.desc()),
    )
    return {
        "company": company,
        "customers": list(customers.scalars().all()),
        "deals": list(deals.scalars().all()),
        "counts": (await related_counts(db, [company.id]))[company.id],
    }


async def update_company(
    db: AsyncSession, company_id: UUID, body: CompanyUpdate,
) -> Company:
    company = await get_or_404(db, Company, company_id, "Company")
    changes = body.changes()
    await validate_references(
        db, Reference("assigned_to", User, changes.get("assigned_to"), "Assigned user"),
    )
    for name, value in _enum_values(changes).items():
        setattr(company, name, value)
    await db.commit()
    await db.refresh(company)
    return company


async def delete_company(db: AsyncSession, user: CurrentUser, company_id: UUID) -> None:
    company = await get_or_404(db, Company, company_id, "Company")
    require_ownership(
        user, company.created_by,
        message="Forbidden: only the creator can delete this company",
    )

    async def _operation() -> None:
        for model in _DEPENDENTS:
            rows = await db.execute(select(model).where(model.company_id == company.id))
            for row in rows.scalars().all():
                row.company_id = None
        await db.delete(company)

    await run_in_transaction(db, _operation, "Failed to delete company")
    logger.info(
        "Company deleted",
        extra={"user_id": str(user.id), "resource_id": str(company_id)},
    )
