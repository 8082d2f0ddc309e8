"""UserCapacity ORM - weekly workload limit and working schedule of one user.

Invariants:
    - At most one row per user (unique user_id)
    - max_items_per_week >= 1
    - working_days is a comma-separated list of upper-case weekday names
"""

import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clarity_crm.core.domain_types import DEFAULT_MAX_ITEMS_PER_WEEK, DEFAULT_WORKING_DAYS
from clarity_crm.db.base import Base, TimestampMixin


class UserCapacity(TimestampMixin, Base):
    __tablename__ = "user_capacities"
    __table_args__ = (
        CheckConstraint("max_items_per_week >= 1", name="ck_capacity_max_items_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    max_items_per_week: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_MAX_ITEMS_PER_WEEK,
    )
    working_days: Mapped[str] = mapped_column(
        String(100), nullable=False, default=DEFAULT_WORKING_DAYS,
    )
    working_hours_start: Mapped[int] = mapped_column(
        Integer, nullable=False, default=9,
    )
    working_hours_end: Mapped[int] = mapped_column(
        Integer, nullable=False, default=17,
    )

    user: Mapped["User"] = relationship(  # noqa: F821
        "User", back_populates="capacity",
    )
