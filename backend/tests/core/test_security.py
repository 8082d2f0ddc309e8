"""Password hashing and access tokens."""

from datetime import timedelta
from uuid import uuid4

import jwt
import pytest

from clarity_crm.config import get_settings
from clarity_crm.core.errors import UnauthorizedError
from clarity_crm.infrastructure.security import (
    create_access_token, decode_access_token, hash_password, verify_password,
)


def test_hash_round_trip():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)


def test_verify_rejects_malformed_hash():
    assert verify_password("secret123", "not-a-bcrypt-hash") is False


def test_token_carries_identity():
    user_id, team_id = uuid4(), uuid4()
    payload = decode_access_token(create_access_token(user_id, "SALES_LEAD", team_id))
    assert payload["sub"] == str(user_id)
    assert payload["role"] == "SALES_LEAD"
    assert payload["team_id"] == str(team_id)
    assert payload["type"] == "access"


def test_expired_token_rejected():
    token = create_access_token(uuid4(), "SALES_AGENT", expires_delta=timedelta(seconds=-1))
    with pytest.raises(UnauthorizedError, match="Token has expired"):
        decode_access_token(token)


def test_token_signed_with_other_secret_rejected():
    token = jwt.encode({"sub": str(uuid4()), "type": "access"}, "wrong-secret", algorithm="HS256")
    with pytest.raises(UnauthorizedError, match="Invalid authentication token"):
        decode_access_token(token)


def test_token_without_access_type_rejected():
    settings = get_settings()
    token = jwt.encode(
        {"sub": str(uuid4()), "type": "refresh"}, settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(UnauthorizedError):
        decode_access_token(token)
