"""Customer Service - contacts, their linked company and related work.

Invariants:
    - Search is case-insensitive over name, free-text company, email and the
      linked company's name
    - create_customer_with_company writes the inline company and the customer
      in one transaction
    - Deleting a customer detaches (never deletes) its deals, tasks,
      activities and call notes
"""

import logging
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import CurrentUser, require_ownership
from clarity_crm.core.domain_types import CustomerStatus
from clarity_crm.infrastructure.database import run_in_transaction
from clarity_crm.models.activity import Activity
from clarity_crm.models.call_note import CallNote
from clarity_crm.models.company import Company
from clarity_crm.models.customer import Customer
from clarity_crm.models.deal import Deal
from clarity_crm.models.task import Task
from clarity_crm.models.user import User
from clarity_crm.schemas.customer import CustomerCreate, CustomerUpdate
from clarity_crm.services.references import (
    Reference, count_by, get_or_404, validate_references,
)

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10

# Tables whose customer_id is cleared when the customer goes away
_DEPENDENTS = (Deal, Task, Activity, CallNote)


def escape_like(text: str) -> str:
    """Literal `%`, `_` and backslash for an ILIKE pattern escaped with backslash."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def list_customers(
    db: AsyncSession,
    status: CustomerStatus | None = None,
    assigned_to: UUID | None = None,
    search: str | None = None,
) -> list[Customer]:
    query = (
        select(Customer)
        .outerjoin(Company, Customer.company_id == Company.id)
        .order_by(Customer.created_at.desc())
    )
    if status:
        query = query.where(Customer.status == status.value)
    if assigned_to:
        query = query.where(Customer.assigned_to == assigned_to)
    if search and search.strip():
        pattern = f"%{escape_like(search.strip())}%"
        query = query.where(or_(
            Customer.name.ilike(pattern, escape="\\"),
            Customer.company.ilike(pattern, escape="\\"),
            Customer.email.ilike(pattern, escape="\\"),
            Company.name.ilike(pattern, escape="\\"),
        ))
    result = await db.execute(query)
    return list(result.scalars().unique().all())


async def related_counts(
    db: AsyncSession, customer_ids: list[UUID],
) -> dict[UUID, dict[str, int]]:
    activities = await count_by(db, Activity.customer_id, customer_ids)
    call_notes = await count_by(db, CallNote.customer_id, customer_ids)
    tasks = await count_by(db, Task.customer_id, customer_ids)
    deals = await count_by(db, Deal.customer_id, customer_ids)
    return {
        cid: {
            "activities": activities[cid],
            "call_notes": call_notes[cid],
            "tasks": tasks[cid],
            "deals": deals[cid],
        }
        for cid in customer_ids
    }


async def create_customer_with_company(
    db: AsyncSession, user: CurrentUser, body: CustomerCreate,
) -> Customer:
    await validate_references(
        db,
        Reference("assigned_to", User, body.assigned_to, "Assigned user"),
        Reference("company_id", Company, body.company_id, "Company"),
        Reference(
            "new_company.assigned_to", User,
            body.new_company.assigned_to if body.new_company else None,
            "Assigned user",
        ),
    )
    data = body.model_dump(exclude={"new_company"})
    data["status"] = body.status.value
    data["source"] = body.source.value if body.source else None

    async def _operation() -> Customer:
        company_id = body.company_id
        company_name = body.company
        if body.new_company is not None:
            columns = body.new_company.to_columns()
            for name in ("industry", "size", "status"):
                if columns[name] is not None:
                    columns[name] = columns[name].value
            company = Company(**columns, created_by=user.id)
            db.add(company)
            await db.flush()
            company_id = company.id
            company_name = company_name or company.name
        customer = Customer(
            **{**data, "company_id": company_id, "company": company_name},
            created_by=user.id,
        )
        db.add(customer)
        await db.flush()
        return customer

    customer = await run_in_transaction(db, _operation, "Failed to create customer")
    await db.refresh(customer)
    logger.info(
        "Customer created",
        extra={"user_id": str(user.id), "resource_id": str(customer.id)},
    )
    return customer


async def get_customer_detail(db: AsyncSession, customer_id: UUID) -> dict:
    customer = await get_or_404(db, Customer, customer_id, "Customer")

    async def _recent(model):
        rows = await db.execute(
            select(model)
            .where(model.customer_id == customer.id)
            .order_by(model.created_at.desc())
            .limit(RECENT_LIMIT),
        )
        return list(rows.scalars().all())

    deals = await db.execute(
        select(Deal).where(Deal.customer_id == customer.id).order_by(Deal.created_at.desc()),
    )
    return {
        "customer": customer,
        "activities": await _recent(Activity),
        "call_notes": await _recent(CallNote),
        "tasks": await _recent(Task),
        "deals": list(deals.scalars().all()),
        "counts": (await related_counts(db, [customer.id]))[customer.id],
    }


async def update_customer(
    db: AsyncSession, customer_id: UUID, body: CustomerUpdate,
) -> Customer:
    customer = await get_or_404(db, Customer, customer_id, "Customer")
    changes = body.changes()
    await validate_references(
        db,
        Reference("assigned_to", User, changes.get("assigned_to"), "Assigned user"),
        Reference("company_id", Company, changes.get("company_id"), "Company"),
    )
    for name in ("status", "source"):
        if changes.get(name) is not None:
            changes[name] = changes[name].value
    for name, value in changes.items():
        setattr(customer, name, value)
    await db.commit()
    await db.refresh(customer)
    return customer


async def delete_customer(
    db: AsyncSession, user: CurrentUser, customer_id: UUID,
) -> None:
    customer = await get_or_404(db, Customer, customer_id, "Customer")
    require_ownership(
        user, customer.created_by,
        message="Forbidden: only the creator can delete this customer",
    )

    async def _operation() -> None:
        for model in _DEPENDENTS:
            rows = await db.execute(select(model).where(model.customer_id == customer.id))
            for row in rows.scalars().all():
                row.customer_id = None
        await db.delete(customer)

    await run_in_transaction(db, _operation, "Failed to delete customer")
    logger.info(
        "Customer deleted",
        extra={"user_id": str(user.id), "resource_id": str(customer_id)},
    )
