"""Async SQLAlchemy engine and session factory.

Provides:
- Base: Declarative base for all registrar tables
- get_engine(): Lazy engine singleton built from DATABASE_URL
- get_session(): Async generator yielding an AsyncSession (session_factory)
- session_scope(): One session from a session_factory, closed on exit
- init_db() / close_db(): Lifespan helpers
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.registrar.config import get_settings

# ── Module-level engine (lazy init) ────────────────────────────────────────

_engine: AsyncEngine | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async engine singleton."""
    global _engine
    if _engine is None:
        settings = get_settings()
        kwargs: dict = {"echo": False}
        if not settings.DATABASE_URL.startswith("sqlite"):
            kwargs.update(pool_size=20, max_overflow=10)
        _engine = create_async_engine(settings.DATABASE_URL, **kwargs)
    return _engine


# ── Declarative Base ────────────────────────────────────────────────────────

metadata = MetaData()


class Base(DeclarativeBase):
    """Base class for registrar models."""

    metadata = metadata


# ── Session Factory ─────────────────────────────────────────────────────────


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an AsyncSession bound to the engine singleton."""
    engine = get_engine()
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@asynccontextmanager
async def session_scope(
    session_factory: Callable[[], AsyncGenerator[AsyncSession, None]],
) -> AsyncIterator[AsyncSession]:
    """Take one session from a ``get_session``-shaped factory.

    The factory generator is closed before the block exits, so the session
    and its connection are released immediately rather than when the
    abandoned generator is garbage collected.
    """
    sessions = session_factory()
    try:
        async for session in sessions:
            yield session
            break
    finally:
        await sessions.aclose()


# ── Database Initialization ─────────────────────────────────────────────────


async def init_db() -> None:
    """Create tables that don't exist yet (Alembic owns real migrations)."""
    # Import models so they register on Base.metadata
    from src.registrar.attendees import models  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and close all connections."""
    global _engine
    if _engine:
        await _engine.dispose()
        _engine = None
