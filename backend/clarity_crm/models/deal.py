"""Deal ORM - a sales opportunity moving through pipeline stages.

Invariants:
    - probability in 0..100; value >= 0
    - actual_close_date is set iff stage is CLOSED_WON or CLOSED_LOST
    - stage_changed_at is the moment the deal entered its current stage
    - total_duration (days) is set when the deal closes
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint, DateTime, Float, ForeignKey, Integer, String, Text, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clarity_crm.core.domain_types import DealStage
from clarity_crm.db.base import Base, TimestampMixin, utcnow


class Deal(TimestampMixin, Base):
    __tablename__ = "deals"
    __table_args__ = (
        CheckConstraint(
            "probability >= 0 AND probability <= 100", name="ck_deal_probability_range",
        ),
        CheckConstraint("value >= 0", name="ck_deal_value_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    value: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    probability: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    stage: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DealStage.PROSPECTING.value, index=True,
    )
    source: Mapped[str | None] = mapped_column(String(20), nullable=True)
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    expected_close_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    actual_close_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    lost_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    stage_changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    days_in_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)

    customer: Mapped[Optional["Customer"]] = relationship(  # noqa: F821
        "Customer", lazy="selectin",
    )
    company: Mapped[Optional["Company"]] = relationship(  # noqa: F821
        "Company", lazy="selectin",
    )
    owner: Mapped[Optional["User"]] = relationship(  # noqa: F821
        "User", foreign_keys=[owner_id], lazy="selectin",
    )
    creator: Mapped[Optional["User"]] = relationship(  # noqa: F821
        "User", foreign_keys=[created_by], lazy="selectin",
    )
