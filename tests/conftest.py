"""Shared test fixtures for the registrar test suite.

Storage fixtures run the real repositories against a throwaway SQLite file
through aiosqlite, so SQL, constraints and JSON columns behave as they do in
production without a PostgreSQL server.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from src.registrar.attendees import models  # noqa: F401
from src.registrar.attendees.ledger import NotificationLedger
from src.registrar.attendees.repository import AttendeeRepository
from src.registrar.attendees.schemas import (
    AttendeeCreate,
    AttendeeRead,
    ForumRead,
    ForumSettingsData,
    ForumSettingsRead,
)
from src.registrar.core.database import Base

FORUM_ID = "forum-2025-dallas"


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Async engine on a fresh SQLite file with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'registrar.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory with the same shape as core.database.get_session."""

    async def factory() -> AsyncGenerator[AsyncSession, None]:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            yield session

    return factory


@pytest.fixture
def repository(session_factory) -> AttendeeRepository:
    return AttendeeRepository(session_factory=session_factory)


@pytest.fixture
def ledger(session_factory) -> NotificationLedger:
    return NotificationLedger(session_factory=session_factory)


@pytest_asyncio.fixture
async def forum(repository) -> ForumRead:
    """A locally mirrored forum."""
    return await repository.upsert_forum(
        ForumRead(
            id=FORUM_ID,
            name="Dallas IT & Security Forum",
            brand="SINC USA",
            date="2025-03-14",
            city="Dallas",
            venue="The Adolphus",
        )
    )


@pytest_asyncio.fixture
async def forum_settings(repository, forum) -> ForumSettingsRead:
    return await repository.upsert_forum_settings(
        forum.id,
        ForumSettingsData(
            initial_registration_form_id="form-initial",
            executive_profile_form_id="form-profile",
            deal_code="DAL25",
        ),
    )


@pytest_asyncio.fixture
async def attendee(repository, forum) -> AttendeeRead:
    """An in_queue attendee of the seeded forum."""
    return await repository.create_attendee(
        forum.id,
        AttendeeCreate(
            email="jane.doe@acme.com",
            first_name="Jane",
            last_name="Doe",
            company="Acme Corp",
            title="CIO",
            industry="Retail",
            sales_rep="Trevor",
        ),
    )
