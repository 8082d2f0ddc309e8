"""Request Dependencies - authentication, pagination and common query parsing.

Invariants:
    - get_current_user returns a CurrentUser for an active user or raises UnauthorizedError
    - Token identity is the only source of "who is calling" (no userId/isLead query flags)
    - Pagination is opt-in: without `limit` the whole list is returned; otherwise
      page >= 1 and 1 <= limit <= 100 (out-of-range values are clamped)
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import CurrentUser
from clarity_crm.core.date_ranges import DateRange, get_date_range, parse_time_filter
from clarity_crm.core.domain_types import TimeFilter, UserRole
from clarity_crm.core.errors import UnauthorizedError, ValidationFailedError
from clarity_crm.infrastructure.database import get_db
from clarity_crm.infrastructure.security import decode_access_token
from clarity_crm.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)

MAX_PAGE_SIZE = 100


def to_current_user(user: User) -> CurrentUser:
    return CurrentUser(
        id=user.id,
        email=user.email,
        name=user.name,
        role=UserRole(user.role),
        team_id=user.team_id,
        is_active=user.is_active,
    )


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the bearer token to an active user."""
    if credentials is None:
        raise UnauthorizedError()
    payload = decode_access_token(credentials.credentials)
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise UnauthorizedError("Invalid authentication token")
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")
    request.state.user_id = str(user.id)
    return to_current_user(user)


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int | None

    @property
    def offset(self) -> int:
        if self.limit is None:
            return 0
        return (self.page - 1) * self.limit


def get_pagination(
    page: int = Query(1), limit: int | None = Query(None),
) -> Pagination:
    if limit is None:
        return Pagination(page=1, limit=None)
    return Pagination(
        page=max(1, page),
        limit=min(MAX_PAGE_SIZE, max(1, limit)),
    )


def time_window(
    filter: str | None = Query(None, description="Time filter, e.g. 7d, month, upcoming7d"),
) -> DateRange | None:
    """Optional `filter` query param; absent means no date scoping."""
    if not filter:
        return None
    time_filter = parse_time_filter(filter)
    if time_filter == TimeFilter.ALL:
        return None
    return get_date_range(time_filter)


def parse_datetime_param(value: str | None, field: str) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationFailedError(
            [{"field": field, "message": "Expected an ISO 8601 date-time"}],
        )
