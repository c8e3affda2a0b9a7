"""Service test fixtures — async DB, fakes and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - Registry, profile service and gateway overridden with in-memory fakes
    - db_manager patched for code paths that open their own sessions

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for service tests
      (PostgreSQL-specific features are not exercised here)
    - StaticPool: one shared connection, so every session sees the same in-memory DB
"""

from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from gatekeeper.api.dependencies import (
    get_gateway, get_profiles, get_registry, get_timeouts,
)
from gatekeeper.core.session_registry import SessionRegistry
from gatekeeper.core.verification_state import SessionTimeouts
from gatekeeper.db.base import Base
from gatekeeper.infrastructure.database import get_db, DatabaseSessionManager
import gatekeeper.infrastructure.database as db_module
from gatekeeper.main import app
from gatekeeper.models import Scope
from tests.services.fakes import (
    LOG_CHANNELS, MAIN_ROLE, RAID_ROLE, REVIEW_CHANNEL, FakeGateway, FakeProfileService,
)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
        poolclass=StaticPool, connect_args={"check_same_thread": False},
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


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def profiles():
    return FakeProfileService()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def timeouts():
    return SessionTimeouts(
        name_selection=timedelta(minutes=2),
        proof_window=timedelta(minutes=20),
        manual_consent=timedelta(minutes=2),
        check_stall=timedelta(minutes=5),
    )


@pytest.fixture
async def main_scope(test_db):
    scope = Scope(
        id="MAIN", community_id="guild-1", name="Community", is_main=True,
        verified_role_id=MAIN_ROLE, manual_review_channel_id=REVIEW_CHANNEL,
        logging_channels=dict(LOG_CHANNELS), requirement_policy={},
    )
    test_db.add(scope)
    await test_db.commit()
    return scope


@pytest.fixture
async def raid_scope(test_db):
    scope = Scope(
        id="raids", community_id="guild-1", name="Raids", is_main=False,
        verified_role_id=RAID_ROLE, manual_review_channel_id=REVIEW_CHANNEL,
        logging_channels=dict(LOG_CHANNELS),
        requirement_policy={"check_requirements": True, "rank": {"enabled": True, "min": 10}},
    )
    test_db.add(scope)
    await test_db.commit()
    return scope


@pytest.fixture
async def client(test_engine, test_session_factory, registry, profiles, gateway, timeouts):
    """FastAPI test client with DB and collaborators overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_profiles] = lambda: profiles
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_timeouts] = lambda: timeouts

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
