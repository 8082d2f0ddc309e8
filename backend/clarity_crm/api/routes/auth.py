"""Auth Routes - login and current-user lookup.

Invariants:
    - Login is rate limited per client IP + user agent (auth limiter, 5 / 15 min)
    - Unknown email, wrong password and inactive account all return the same 401
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.core.authorization import CurrentUser
from clarity_crm.infrastructure.database import get_db
from clarity_crm.infrastructure.rate_limiter import auth_limiter
from clarity_crm.models.user import User
from clarity_crm.schemas.auth import LoginRequest, TokenResponse
from clarity_crm.schemas.user import UserDetailResponse, UserResponse
from clarity_crm.services.auth_service import authenticate, issue_token
from clarity_crm.services.references import get_or_404

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/login", response_model=TokenResponse,
    dependencies=[Depends(auth_limiter)],
)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await authenticate(db, body.email, body.password)
    logger.info("User logged in", extra={"user_id": str(user.id)})
    return TokenResponse(**issue_token(user), user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserDetailResponse)
async def me(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await get_or_404(db, User, user.id, "User")
