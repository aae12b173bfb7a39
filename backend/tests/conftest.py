"""
CodeSnap Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite) with
       the schema created from Base.metadata, a controllable clock, and,
       for API tests, an app built by create_app(test_settings) behind an
       httpx AsyncClient.

Fixture Hierarchy:
    clock            FakeClock frozen at 2026-01-01T00:00Z; tests advance it
    test_settings    Settings pointing at sqlite+aiosqlite:// (in memory)
    session_factory  engine + schema, disposed after the test
    db_session       one AsyncSession from session_factory
    mock_db_session  AsyncMock session for failure-path unit tests
    app              create_app(test_settings), get_clock overridden
    test_client      httpx AsyncClient over ASGITransport
"""

import os

# Before any codesnap import: codesnap.main builds a module-level app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ADMIN_PASSWORD"] = "test-admin-secret"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from codesnap.config import Settings
from codesnap.database import Base, create_engine_from_settings, create_session_factory
from codesnap.models.paste import Paste  # noqa: F401

ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def admin_password() -> str:
    return ADMIN_PASSWORD


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        admin_password=ADMIN_PASSWORD,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def session_factory(test_settings):
    """Fresh in-memory database with the pastes table created."""
    engine = create_engine_from_settings(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_list_degrades(mock_db_session):
            mock_db_session.execute.side_effect = OperationalError(...)
            assert await PasteStore(mock_db_session).list_recent() == []
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.get = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def app(test_settings, clock):
    """
    Application wired to an in-memory database and the fake clock.

    ASGITransport does not run the lifespan, so the schema is created here
    and the engine disposed on teardown.
    """
    from codesnap.main import create_app
    from codesnap.routes.dependencies import get_clock

    application = create_app(test_settings)
    async with application.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    application.dependency_overrides[get_clock] = lambda: clock

    yield application

    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
