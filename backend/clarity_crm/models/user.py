"""User ORM - a CRM user (Sales Lead, Sales Agent or Manager).

Invariants:
    - email is unique
    - password_hash is a bcrypt hash, never plaintext
    - Deactivated users (is_active=False) cannot authenticate
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clarity_crm.core.domain_types import UserRole
from clarity_crm.db.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.SALES_AGENT.value,
    )
    team_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )

    team: Mapped[Optional["Team"]] = relationship(  # noqa: F821
        "Team", lazy="selectin",
    )
    capacity: Mapped[Optional["UserCapacity"]] = relationship(  # noqa: F821
        "UserCapacity", back_populates="user", uselist=False,
        cascade="all, delete-orphan", lazy="selectin",
    )
