"""Reference helpers - 404 lookups, foreign-key pre-validation and grouped counts.

Invariants:
    - validate_references checks every reference and reports all missing ones at once
      as a 400 ValidationFailedError with details [{field, message: "<Label> not found"}]
    - None references are skipped
"""

from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.errors import ResourceNotFoundError, ValidationFailedError

M = TypeVar("M")


@dataclass(frozen=True)
class Reference:
    field: str
    model: Any
    id: UUID | None
    label: str


async def get_or_404(
    db: AsyncSession, model: type[M], obj_id: UUID, resource_type: str | None = None,
) -> M:
    obj = await db.get(model, obj_id)
    if obj is None:
        raise ResourceNotFoundError(resource_type or model.__name__, str(obj_id))
    return obj


async def validate_references(db: AsyncSession, *refs: Reference) -> None:
    details = []
    for ref in refs:
        if ref.id is None:
            continue
        exists = await db.scalar(
            select(func.count()).select_from(ref.model).where(ref.model.id == ref.id),
        )
        if not exists:
            details.append({"field": ref.field, "message": f"{ref.label} not found"})
    if details:
        raise ValidationFailedError(details)


async def count_by(
    db: AsyncSession, column, ids: list[UUID], *conditions,
) -> dict[UUID, int]:
    """{id: number of rows whose `column` equals id}, zero-filled."""
    counts = {i: 0 for i in ids}
    if not ids:
        return counts
    rows = await db.execute(
        select(column, func.count())
        .where(column.in_(ids), *conditions)
        .group_by(column),
    )
    for key, n in rows.all():
        counts[key] = n
    return counts
