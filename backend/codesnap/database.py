"""
CodeSnap Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine/session factory builders, declarative Base,
       and the per-request session dependency.
How:   `create_engine_from_settings()` builds a pooled async engine from an
       explicit Settings object; create_app() keeps the engine and its
       session factory on `app.state`. `get_db_session` hands each request
       its own session and rolls back on error.
Who:   Used by route dependencies, the maintenance tasks, Alembic and tests.

Connection Pooling:
    pool_size / max_overflow come from Settings (defaults 10 + 10).
    pool_pre_ping validates connections before use.
    pool_recycle=3600 recycles connections hourly.
    SQLite (tests) gets a StaticPool so every session shares one in-memory DB.
"""

from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from codesnap.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for autogenerate
    and tests use for create_all().
    """
    pass


def _engine_options(settings: Settings) -> Dict[str, Any]:
    """Pool options for the configured backend."""
    if settings.database_url.startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
    }


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Build the async engine for `settings.database_url`.

    SQL echo is enabled only at DEBUG log level.
    """
    return create_async_engine(
        settings.database_url,
        echo=settings.log_level == "DEBUG",
        **_engine_options(settings),
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to `engine`.

    expire_on_commit=False keeps ORM attributes readable after the store
    commits, so rows can be projected without another round trip.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Opens a session from the factory stored on app.state
        2. Yields it to the route handler (the store commits its own writes)
        3. On error: rolls back so nothing half-written survives
        4. Always: closes the session (returns connection to pool)
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine(engine: AsyncEngine) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
