"""Security - bcrypt password hashing and JWT access tokens.

Invariants:
    - Passwords are only ever stored as bcrypt hashes
    - Tokens are HS256 JWTs with sub (user id), role, team_id, iat, exp, type=access
    - Any decoding failure surfaces as UnauthorizedError, never as a 500
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import bcrypt
import jwt

from clarity_crm.config import get_settings
from clarity_crm.core.errors import UnauthorizedError

TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(
    user_id: UUID,
    role: str,
    team_id: UUID | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload = {
        "sub": str(user_id),
        "role": role,
        "team_id": str(team_id) if team_id else None,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": expires,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("Token has expired")
    except jwt.PyJWTError:
        raise UnauthorizedError("Invalid authentication token")
    if payload.get("type") != TOKEN_TYPE or not payload.get("sub"):
        raise UnauthorizedError("Invalid authentication token")
    return payload
