"""Tests for the notification idempotency ledger."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.registrar.attendees.ledger import NotificationLedger
from src.registrar.attendees.models import EmailAuditLogModel
from src.registrar.attendees.repository import AttendeeRepository
from src.registrar.attendees.schemas import EmailStatus, OutcomeType
from src.registrar.core.database import session_scope


class TestNotificationLedger:
    async def test_empty_ledger(self, ledger, attendee):
        assert await ledger.has_been_sent(attendee.id, OutcomeType.APPROVED) is False
        assert await ledger.list_entries(attendee.id) == []
        assert await ledger.sent_outcomes(attendee.id) == {
            OutcomeType.APPROVED: False,
            OutcomeType.DENIED: False,
            OutcomeType.WAITLISTED: False,
        }

    async def test_record_send_marks_only_that_pair(self, ledger, attendee):
        entry = await ledger.record_send(
            attendee.id, OutcomeType.APPROVED, attendee.email, "Jane Doe"
        )

        assert entry.attendee_id == attendee.id
        assert entry.email_type == OutcomeType.APPROVED
        assert entry.status == EmailStatus.SENT
        assert entry.recipient_name == "Jane Doe"
        assert await ledger.has_been_sent(attendee.id, OutcomeType.APPROVED) is True
        assert await ledger.has_been_sent(attendee.id, OutcomeType.DENIED) is False
        assert await ledger.has_been_sent(str(uuid.uuid4()), OutcomeType.APPROVED) is False

    async def test_failed_entries_do_not_count_as_sent(self, ledger, attendee):
        await ledger.record_send(
            attendee.id, OutcomeType.DENIED, attendee.email, status=EmailStatus.FAILED
        )

        assert await ledger.has_been_sent(attendee.id, OutcomeType.DENIED) is False
        assert len(await ledger.list_entries(attendee.id)) == 1

    async def test_entries_are_newest_first(self, ledger, attendee):
        await ledger.record_send(attendee.id, OutcomeType.WAITLISTED, attendee.email)
        await ledger.record_send(attendee.id, OutcomeType.APPROVED, attendee.email)

        entries = await ledger.list_entries(attendee.id)

        assert [e.email_type for e in entries] == [OutcomeType.APPROVED, OutcomeType.WAITLISTED]
        sent = await ledger.sent_outcomes(attendee.id)
        assert sent[OutcomeType.APPROVED] is True
        assert sent[OutcomeType.WAITLISTED] is True
        assert sent[OutcomeType.DENIED] is False

    async def test_email_type_is_constrained(self, session_factory, attendee):
        async with session_scope(session_factory) as session:
            session.add(
                EmailAuditLogModel(
                    attendee_id=uuid.UUID(attendee.id),
                    email_type="preliminary_approved",
                    recipient_email=attendee.email,
                    status="sent",
                )
            )
            with pytest.raises(IntegrityError):
                await session.commit()

    async def test_unknown_outcome_rejected(self, ledger, attendee):
        with pytest.raises(ValueError):
            await ledger.has_been_sent(attendee.id, "in_queue")


# ── Session Lifetime ────────────────────────────────────────────────────────


@pytest.fixture
def session_events(engine):
    """A session factory that records when each session opens and closes."""
    events: list[str] = []

    async def factory():
        async with AsyncSession(engine, expire_on_commit=False) as session:
            events.append("open")
            try:
                yield session
            finally:
                events.append("closed")

    return factory, events


class TestSessionRelease:
    async def test_sessions_close_before_call_returns(self, session_events, attendee):
        factory, events = session_events
        repository = AttendeeRepository(session_factory=factory)
        ledger = NotificationLedger(session_factory=factory)

        assert (await repository.get_attendee(attendee.id)).email == attendee.email
        assert events == ["open", "closed"]

        await ledger.record_send(attendee.id, OutcomeType.APPROVED, attendee.email)
        assert await ledger.has_been_sent(attendee.id, OutcomeType.APPROVED) is True
        assert events == ["open", "closed"] * 3

    async def test_session_closes_when_block_raises(self, session_events, attendee):
        factory, events = session_events

        with pytest.raises(IntegrityError):
            async with session_scope(factory) as session:
                session.add(
                    EmailAuditLogModel(
                        attendee_id=uuid.UUID(attendee.id),
                        email_type="approved",
                        recipient_email=attendee.email,
                        status="bounced",
                    )
                )
                await session.commit()

        assert events == ["open", "closed"]
