"""Attendee merge engine -- upsert normalized records keyed on (forum, email).

An existing attendee keeps its stage and has its profile fields refreshed; a
new one is inserted at ``in_queue``. ``preview`` answers the same "does this
email already exist" question without writing, through the same lookup.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from src.registrar.attendees.repository import AttendeeRepository
from src.registrar.attendees.schemas import (
    AttendeeCreate,
    AttendeeRead,
    DuplicatePreview,
    NormalizedRecord,
    SaveAction,
    SavedAttendee,
    SaveError,
    SaveResults,
)

logger = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    """Lookup key for an email. Whitespace is stripped; case is kept as submitted."""
    return email.strip()


class AttendeeMergeEngine:
    """Merges submission records into a forum's attendee list.

    Args:
        repository: AttendeeRepository used for lookups and writes.
    """

    def __init__(self, repository: AttendeeRepository) -> None:
        self._repository = repository

    async def _find_existing(self, forum_id: str, email: str) -> AttendeeRead | None:
        return await self._repository.find_by_email(forum_id, normalize_email(email))

    async def merge(self, forum_id: str, records: Iterable[NormalizedRecord]) -> SaveResults:
        """Create or update one attendee per record.

        Each record is handled on its own: a failure is captured as a
        SaveError carrying the source submission and the loop moves on.
        """
        results = SaveResults()

        for record in records:
            email = normalize_email(record.email)
            try:
                existing = await self._find_existing(forum_id, email)
                if existing is not None:
                    await self._repository.apply_import(existing.id, record.attributes)
                    action = SaveAction.UPDATED
                else:
                    await self._repository.create_attendee(
                        forum_id, AttendeeCreate(email=email, **record.attributes)
                    )
                    action = SaveAction.CREATED
            except Exception as exc:
                results.errors.append(SaveError(submission=record.submission, error=str(exc)))
                logger.error(
                    "merge.record_failed",
                    forum_id=forum_id,
                    email=email,
                    error=str(exc),
                )
                continue

            results.saved_attendees.append(
                SavedAttendee(email=email, name=record.name, action=action)
            )

        logger.info(
            "merge.complete",
            forum_id=forum_id,
            created=results.created,
            updated=results.updated,
            errors=len(results.errors),
        )
        return results

    async def preview(self, forum_id: str, emails: Iterable[str]) -> DuplicatePreview:
        """Count new vs already-registered emails without writing anything.

        An email repeated within ``emails`` is counted once.
        """
        preview = DuplicatePreview()
        seen: set[str] = set()

        for raw in emails:
            email = normalize_email(raw)
            if not email or email in seen:
                continue
            seen.add(email)
            preview.total += 1
            if await self._find_existing(forum_id, email) is not None:
                preview.duplicates += 1
                preview.duplicate_emails.append(email)
            else:
                preview.new += 1

        return preview
