"""Attendee repository -- async CRUD for attendees, forums and forum settings.

Provides AttendeeRepository with the session_factory callable pattern: every
method opens its own short-lived AsyncSession, so callers never share
session state. Stage writes only accept AttendeeStage members and are
last-write-wins (no version column).
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.registrar.attendees.models import AttendeeModel, ForumModel, ForumSettingsModel
from src.registrar.attendees.schemas import (
    PROFILE_FIELDS,
    AttendeeCreate,
    AttendeeRead,
    AttendeeStage,
    AttendeeUpdate,
    ForumRead,
    ForumSettingsData,
    ForumSettingsRead,
    ProfileQuestion,
)
from src.registrar.core.database import session_scope
from src.registrar.errors import AttendeeNotFound, ValidationError

logger = structlog.get_logger(__name__)

# Attributes an import may write on top of the plain profile fields.
IMPORTABLE_FIELDS: frozenset[str] = PROFILE_FIELDS | {
    "executive_profile_received",
    "executive_profile_data",
}


# ── Serialization Helpers ───────────────────────────────────────────────────


def _parse_id(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _model_to_attendee(model: AttendeeModel) -> AttendeeRead:
    """Convert AttendeeModel to AttendeeRead schema."""
    profile_data = None
    if model.executive_profile_data is not None:
        profile_data = [ProfileQuestion.model_validate(q) for q in model.executive_profile_data]

    return AttendeeRead(
        id=str(model.id),
        forum_id=model.forum_id,
        email=model.email,
        stage=AttendeeStage(model.stage),
        first_name=model.first_name or "",
        last_name=model.last_name or "",
        company=model.company or "",
        title=model.title or "",
        industry=model.industry or "",
        cellphone=model.cellphone or "",
        company_size=model.company_size or "",
        management_level=model.management_level or "",
        sales_rep=model.sales_rep or "",
        airport=model.airport or "",
        hotel=model.hotel or "",
        gender=model.gender or "",
        dietary_notes=model.dietary_notes or "",
        notes=model.notes or "",
        denial_reason=model.denial_reason,
        executive_profile_received=bool(model.executive_profile_received),
        executive_profile_data=profile_data,
        executive_profile_enriched_at=model.executive_profile_enriched_at,
        hubspot_deal_id=model.hubspot_deal_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _dump_profile_data(data: list[ProfileQuestion] | list[dict] | None) -> list[dict] | None:
    if data is None:
        return None
    return [
        q.model_dump(mode="json") if isinstance(q, ProfileQuestion) else dict(q)
        for q in data
    ]


# ── Repository ──────────────────────────────────────────────────────────────


class AttendeeRepository:
    """Async CRUD operations for attendees, forums and forum settings.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    # ── Attendees: reads ────────────────────────────────────────────────────

    async def get_attendee(self, attendee_id: str) -> AttendeeRead | None:
        """Get an attendee by ID, None if absent or the ID is malformed."""
        parsed = _parse_id(attendee_id)
        if parsed is None:
            return None
        async with session_scope(self._session_factory) as session:
            model = await session.get(AttendeeModel, parsed)
            if model is None:
                return None
            return _model_to_attendee(model)

    async def require_attendee(self, attendee_id: str) -> AttendeeRead:
        """Get an attendee by ID or raise AttendeeNotFound."""
        attendee = await self.get_attendee(attendee_id)
        if attendee is None:
            raise AttendeeNotFound(attendee_id)
        return attendee

    async def find_by_email(self, forum_id: str, email: str) -> AttendeeRead | None:
        """Point lookup on (forum_id, email) -- the import dedup key."""
        async with session_scope(self._session_factory) as session:
            stmt = select(AttendeeModel).where(
                AttendeeModel.forum_id == forum_id,
                AttendeeModel.email == email,
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            return _model_to_attendee(model)

    async def list_attendees(
        self, forum_id: str, stage: AttendeeStage | None = None
    ) -> list[AttendeeRead]:
        """List a forum's attendees, optionally filtered by stage."""
        async with session_scope(self._session_factory) as session:
            stmt = select(AttendeeModel).where(AttendeeModel.forum_id == forum_id)
            if stage is not None:
                stmt = stmt.where(AttendeeModel.stage == stage.value)
            stmt = stmt.order_by(AttendeeModel.created_at, AttendeeModel.email)
            result = await session.execute(stmt)
            return [_model_to_attendee(m) for m in result.scalars().all()]

    async def list_profiles_for_enrichment(self, forum_id: str) -> list[AttendeeRead]:
        """Attendees of a forum that have a stored executive profile."""
        async with session_scope(self._session_factory) as session:
            stmt = select(AttendeeModel).where(
                AttendeeModel.forum_id == forum_id,
                AttendeeModel.executive_profile_received.is_(True),
                AttendeeModel.executive_profile_data.is_not(None),
            )
            result = await session.execute(stmt)
            return [
                _model_to_attendee(m)
                for m in result.scalars().all()
                if m.executive_profile_data is not None
            ]

    # ── Attendees: writes ───────────────────────────────────────────────────

    async def create_attendee(self, forum_id: str, data: AttendeeCreate) -> AttendeeRead:
        """Insert a new attendee. The stage is always in_queue."""
        profile_data = _dump_profile_data(data.executive_profile_data)
        async with session_scope(self._session_factory) as session:
            model = AttendeeModel(
                forum_id=forum_id,
                email=data.email,
                stage=AttendeeStage.IN_QUEUE.value,
                executive_profile_received=(
                    data.executive_profile_received or profile_data is not None
                ),
                executive_profile_data=profile_data,
                **data.model_dump(include=set(PROFILE_FIELDS)),
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info(
                "attendee.created",
                attendee_id=str(model.id),
                forum_id=forum_id,
            )
            return _model_to_attendee(model)

    async def update_profile(self, attendee_id: str, data: AttendeeUpdate) -> AttendeeRead:
        """Apply a partial profile edit. Stage and ledger-related fields are untouched."""
        return await self._update(attendee_id, data.model_dump(exclude_none=True))

    async def apply_import(self, attendee_id: str, attributes: dict[str, Any]) -> AttendeeRead:
        """Write imported attributes onto an existing attendee, preserving stage.

        Writing a fresh executive profile clears the enrichment marker so the
        new raw answers are enriched on the next pass.
        """
        unknown = set(attributes) - IMPORTABLE_FIELDS
        if unknown:
            raise ValueError(f"Not importable: {', '.join(sorted(unknown))}")

        values = dict(attributes)
        if values.get("executive_profile_data") is not None:
            values["executive_profile_data"] = _dump_profile_data(values["executive_profile_data"])
            values["executive_profile_received"] = True
            values["executive_profile_enriched_at"] = None
        return await self._update(attendee_id, values)

    async def update_stage(self, attendee_id: str, stage: AttendeeStage) -> AttendeeRead:
        """Commit a stage change (last write wins)."""
        if not isinstance(stage, AttendeeStage):
            try:
                stage = AttendeeStage(stage)
            except ValueError:
                raise ValidationError(f"Unknown stage: {stage}") from None
        attendee = await self._update(attendee_id, {"stage": stage.value})
        logger.info("attendee.stage_updated", attendee_id=attendee_id, stage=stage.value)
        return attendee

    async def set_denial_reason(self, attendee_id: str, reason: str) -> AttendeeRead:
        return await self._update(attendee_id, {"denial_reason": reason})

    async def set_hubspot_deal_id(self, attendee_id: str, deal_id: str) -> AttendeeRead:
        return await self._update(attendee_id, {"hubspot_deal_id": deal_id})

    async def save_enriched_profile(
        self, attendee_id: str, data: list[ProfileQuestion]
    ) -> AttendeeRead:
        """Replace executive profile data with its enriched form and stamp the marker."""
        return await self._update(
            attendee_id,
            {
                "executive_profile_data": _dump_profile_data(data),
                "executive_profile_enriched_at": datetime.now(timezone.utc),
            },
        )

    async def delete_attendee(self, attendee_id: str) -> bool:
        """Hard-delete an attendee (explicit admin action). True if a row was removed."""
        parsed = _parse_id(attendee_id)
        if parsed is None:
            return False
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                delete(AttendeeModel).where(AttendeeModel.id == parsed)
            )
            await session.commit()
            deleted = (result.rowcount or 0) > 0
            if deleted:
                logger.info("attendee.deleted", attendee_id=attendee_id)
            return deleted

    async def _update(self, attendee_id: str, values: dict[str, Any]) -> AttendeeRead:
        parsed = _parse_id(attendee_id)
        if parsed is None:
            raise AttendeeNotFound(attendee_id)
        async with session_scope(self._session_factory) as session:
            model = await session.get(AttendeeModel, parsed)
            if model is None:
                raise AttendeeNotFound(attendee_id)
            for key, value in values.items():
                setattr(model, key, value)
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_attendee(model)

    # ── Forums ──────────────────────────────────────────────────────────────

    async def get_forum(self, forum_id: str) -> ForumRead | None:
        async with session_scope(self._session_factory) as session:
            model = await session.get(ForumModel, forum_id)
            if model is None:
                return None
            return ForumRead.model_validate(model)

    async def upsert_forum(self, forum: ForumRead) -> ForumRead:
        """Insert or overwrite the local mirror of a forum."""
        async with session_scope(self._session_factory) as session:
            model = await session.get(ForumModel, forum.id)
            if model is None:
                model = ForumModel(id=forum.id)
                session.add(model)
            model.name = forum.name
            model.brand = forum.brand
            model.date = forum.date
            model.city = forum.city
            model.venue = forum.venue
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return ForumRead.model_validate(model)

    # ── Forum Settings ──────────────────────────────────────────────────────

    async def get_forum_settings(self, forum_id: str) -> ForumSettingsRead | None:
        async with session_scope(self._session_factory) as session:
            model = await session.get(ForumSettingsModel, forum_id)
            if model is None:
                return None
            return ForumSettingsRead.model_validate(model)

    async def upsert_forum_settings(
        self, forum_id: str, data: ForumSettingsData
    ) -> ForumSettingsRead:
        async with session_scope(self._session_factory) as session:
            model = await session.get(ForumSettingsModel, forum_id)
            if model is None:
                model = ForumSettingsModel(forum_id=forum_id)
                session.add(model)
            for key, value in data.model_dump(mode="json").items():
                setattr(model, key, value)
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            logger.info("forum_settings.saved", forum_id=forum_id)
            return ForumSettingsRead.model_validate(model)
