"""Notification idempotency ledger over the email audit log.

The ledger is the single source of truth for "has this outcome email already
gone out". Entries are appended by the email sender after the provider has
accepted a message and are never updated or deleted.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.registrar.attendees.models import EmailAuditLogModel
from src.registrar.attendees.schemas import EmailAuditEntry, EmailStatus, OutcomeType
from src.registrar.core.database import session_scope

logger = structlog.get_logger(__name__)


def _model_to_entry(model: EmailAuditLogModel) -> EmailAuditEntry:
    return EmailAuditEntry(
        id=str(model.id),
        attendee_id=str(model.attendee_id),
        email_type=OutcomeType(model.email_type),
        recipient_email=model.recipient_email,
        recipient_name=model.recipient_name or "",
        status=EmailStatus(model.status),
        sent_at=model.sent_at,
        created_at=model.created_at,
    )


class NotificationLedger:
    """Append-only access to the email audit log.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
    """

    def __init__(
        self, session_factory: Callable[..., AsyncGenerator[AsyncSession, None]]
    ) -> None:
        self._session_factory = session_factory

    async def has_been_sent(self, attendee_id: str, outcome: OutcomeType) -> bool:
        """True iff a ``sent`` entry exists for exactly (attendee, outcome)."""
        async with session_scope(self._session_factory) as session:
            stmt = (
                select(EmailAuditLogModel.id)
                .where(
                    EmailAuditLogModel.attendee_id == uuid.UUID(str(attendee_id)),
                    EmailAuditLogModel.email_type == OutcomeType(outcome).value,
                    EmailAuditLogModel.status == EmailStatus.SENT.value,
                )
                .limit(1)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def record_send(
        self,
        attendee_id: str,
        outcome: OutcomeType,
        recipient_email: str,
        recipient_name: str = "",
        status: EmailStatus = EmailStatus.SENT,
    ) -> EmailAuditEntry:
        """Append one entry. Only called once the provider accepted the email."""
        async with session_scope(self._session_factory) as session:
            model = EmailAuditLogModel(
                attendee_id=uuid.UUID(str(attendee_id)),
                email_type=OutcomeType(outcome).value,
                recipient_email=recipient_email,
                recipient_name=recipient_name,
                status=EmailStatus(status).value,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info(
                "ledger.entry_recorded",
                attendee_id=str(attendee_id),
                email_type=model.email_type,
                status=model.status,
            )
            return _model_to_entry(model)

    async def list_entries(self, attendee_id: str) -> list[EmailAuditEntry]:
        """All entries for an attendee, newest first."""
        async with session_scope(self._session_factory) as session:
            stmt = (
                select(EmailAuditLogModel)
                .where(EmailAuditLogModel.attendee_id == uuid.UUID(str(attendee_id)))
                .order_by(EmailAuditLogModel.sent_at.desc())
            )
            result = await session.execute(stmt)
            return [_model_to_entry(m) for m in result.scalars().all()]

    async def sent_outcomes(self, attendee_id: str) -> dict[OutcomeType, bool]:
        """Per-outcome view of which emails have been sent."""
        entries = await self.list_entries(attendee_id)
        sent = {e.email_type for e in entries if e.status == EmailStatus.SENT}
        return {outcome: outcome in sent for outcome in OutcomeType}
