"""Service test fixtures - async DB, authenticated users and a FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched so the readiness probe sees the test engine
    - Rate limit counters are cleared before every test
    - The Anthropic client dependency is None unless a test installs a fake

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - Users are inserted directly and authenticated with real JWTs, so the
      whole get_current_user path runs in every route test
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from clarity_crm.api.routes.insights import get_anthropic_client
from clarity_crm.core.domain_types import UserRole
from clarity_crm.db.base import Base
from clarity_crm.infrastructure import rate_limiter
from clarity_crm.infrastructure.database import get_db, DatabaseSessionManager
from clarity_crm.models.team import Team
import clarity_crm.infrastructure.database as db_module
from clarity_crm.main import app
from tests.services.factories import auth_headers, make_user


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_rate_limits():
    rate_limiter.clear_all()
    yield
    rate_limiter.clear_all()


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_anthropic_client] = lambda: None

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


# ─── People ──────────────────────────────────────────────────────

@pytest.fixture
async def team(test_db):
    team = Team(name="Sales Team", description="Main sales team")
    test_db.add(team)
    await test_db.commit()
    await test_db.refresh(team)
    return team


@pytest.fixture
async def lead(test_db, team):
    return await make_user(
        test_db, "lead@clarity.com", "Sarah Thompson", UserRole.SALES_LEAD, team, 15,
    )


@pytest.fixture
async def agent(test_db, team):
    return await make_user(test_db, "john@clarity.com", "John Davis", team=team)


@pytest.fixture
async def other_agent(test_db, team):
    return await make_user(test_db, "emma@clarity.com", "Emma Wilson", team=team, max_items=12)


@pytest.fixture
def lead_headers(lead):
    return auth_headers(lead)


@pytest.fixture
def agent_headers(agent):
    return auth_headers(agent)


@pytest.fixture
def other_agent_headers(other_agent):
    return auth_headers(other_agent)
