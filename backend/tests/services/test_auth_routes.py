"""Auth Routes - login, token validation and the current-user endpoint.

Invariants:
    - Wrong password, unknown email and inactive account all give the same 401
    - Every protected route rejects missing, malformed and expired tokens
    - Login is rate limited (5 attempts per 15 minutes per client)
"""

from datetime import timedelta

from clarity_crm.infrastructure.security import create_access_token
from tests.services.factories import TEST_PASSWORD, auth_headers, make_user


async def test_login_returns_token_and_user(client, lead):
    res = await client.post(
        "/api/auth/login", json={"email": "LEAD@clarity.com", "password": TEST_PASSWORD},
    )
    assert res.status_code == 200
    data = res.json()
    assert data["token_type"] == "bearer"
    assert data["expires_in"] > 0
    assert data["user"]["email"] == "lead@clarity.com"
    assert "password_hash" not in data["user"]
    assert res.headers["X-RateLimit-Limit"] == "5"


async def test_login_token_works_on_me(client, lead):
    res = await client.post(
        "/api/auth/login", json={"email": "lead@clarity.com", "password": TEST_PASSWORD},
    )
    token = res.json()["access_token"]
    me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["id"] == str(lead.id)
    assert me.json()["capacity"]["max_items_per_week"] == 15


async def test_login_wrong_password_is_401(client, lead):
    res = await client.post(
        "/api/auth/login", json={"email": "lead@clarity.com", "password": "wrong-one"},
    )
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Invalid email or password"


async def test_login_unknown_email_same_message(client, lead):
    res = await client.post(
        "/api/auth/login", json={"email": "nobody@clarity.com", "password": TEST_PASSWORD},
    )
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Invalid email or password"


async def test_login_inactive_user_rejected(client, test_db, team):
    await make_user(test_db, "gone@clarity.com", "Gone User", team=team, is_active=False)
    res = await client.post(
        "/api/auth/login", json={"email": "gone@clarity.com", "password": TEST_PASSWORD},
    )
    assert res.status_code == 401


async def test_login_invalid_body_is_400(client):
    res = await client.post("/api/auth/login", json={"email": "not-an-email"})
    assert res.status_code == 400
    fields = {d["field"] for d in res.json()["error"]["details"]}
    assert {"email", "password"} <= fields


async def test_login_rate_limited_after_five_attempts(client, lead):
    body = {"email": "lead@clarity.com", "password": "wrong-one"}
    for _ in range(5):
        assert (await client.post("/api/auth/login", json=body)).status_code == 401
    res = await client.post("/api/auth/login", json=body)
    assert res.status_code == 429
    assert res.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert int(res.headers["Retry-After"]) > 0


async def test_me_without_token_is_401(client):
    res = await client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.headers["WWW-Authenticate"] == "Bearer"


async def test_garbage_token_is_401(client):
    res = await client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "UNAUTHORIZED"


async def test_expired_token_is_401(client, lead):
    token = create_access_token(lead.id, lead.role, expires_delta=timedelta(seconds=-5))
    res = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Token has expired"


async def test_token_of_deactivated_user_is_rejected(client, test_db, agent):
    headers = auth_headers(agent)
    agent.is_active = False
    await test_db.commit()
    res = await client.get("/api/auth/me", headers=headers)
    assert res.status_code == 401
