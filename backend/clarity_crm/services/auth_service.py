"""Auth Service - credential check and token issue."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.config import get_settings
from clarity_crm.core.errors import UnauthorizedError
from clarity_crm.infrastructure.security import create_access_token, verify_password
from clarity_crm.models.user import User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Active user matching the credentials; one message for every failure."""
    user = await db.scalar(
        select(User).where(func.lower(User.email) == email.strip().lower()),
    )
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Login failed")
        raise UnauthorizedError(INVALID_CREDENTIALS)
    if not user.is_active:
        logger.warning("Login rejected for inactive user", extra={"user_id": str(user.id)})
        raise UnauthorizedError(INVALID_CREDENTIALS)
    return user


def issue_token(user: User) -> dict:
    settings = get_settings()
    return {
        "access_token": create_access_token(user.id, user.role, user.team_id),
        "token_type": "bearer",
        "expires_in": settings.access_token_expire_minutes * 60,
    }
