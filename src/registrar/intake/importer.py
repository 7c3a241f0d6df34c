"""Submission importer -- fetch, normalize, merge and enrich one form's submissions.

Orchestrates the intake pipeline for a forum:
1. Fetch every submission page of the HubSpot form (a failed page aborts)
2. Validate and normalize each submission; malformed or unresolvable ones
   become per-item errors
3. Merge the normalized records into the forum's attendees
4. For executive profiles, enrich the stored answers from the form definition

With ``persist=False`` nothing is written: the result carries the fetched
submissions and, when a forum is given, a duplicate preview instead.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from src.registrar.attendees.schemas import (
    ImportKind,
    ImportResult,
    NormalizedRecord,
    RawSubmission,
    SaveError,
)
from src.registrar.errors import MalformedSubmission, MissingRequiredField
from src.registrar.intake.enrichment import ProfileEnricher
from src.registrar.intake.merge import AttendeeMergeEngine
from src.registrar.intake.normalizer import collapse_values, normalize_submission, resolve_email
from src.registrar.integrations.hubspot.client import HubSpotClient

logger = structlog.get_logger(__name__)


class SubmissionImporter:
    """Runs one import of a HubSpot form into a forum.

    Args:
        hubspot: HubSpotClient for submissions and form definitions.
        merge_engine: AttendeeMergeEngine writing attendees.
        enricher: ProfileEnricher run after executive-profile imports.
    """

    def __init__(
        self,
        hubspot: HubSpotClient,
        merge_engine: AttendeeMergeEngine,
        enricher: ProfileEnricher,
    ) -> None:
        self._hubspot = hubspot
        self._merge = merge_engine
        self._enricher = enricher

    async def run(
        self,
        kind: ImportKind,
        form_id: str,
        forum_id: str | None = None,
        persist: bool = False,
        force_enrich: bool = False,
    ) -> ImportResult:
        kind = ImportKind(kind)
        submissions, pages = await self._hubspot.fetch_submissions(form_id)

        result = ImportResult(
            form_id=form_id,
            kind=kind,
            total_submissions=len(submissions),
            submissions=submissions,
            pagination=pages,
        )

        if forum_id and persist:
            records, errors = self._normalize_all(submissions, kind)
            save_results = await self._merge.merge(forum_id, records)
            save_results.errors = errors + save_results.errors
            result.save_results = save_results

            if kind == ImportKind.EXECUTIVE_PROFILE:
                result.enrichment_results = await self._enricher.enrich_forum(
                    forum_id, form_id, force=force_enrich
                )
        elif forum_id:
            result.duplicate_preview = await self._merge.preview(
                forum_id, self._emails_of(submissions)
            )

        logger.info(
            "import.complete",
            kind=kind.value,
            form_id=form_id,
            forum_id=forum_id,
            persist=persist,
            total_submissions=len(submissions),
            pages=len(pages),
            saved=len(result.save_results.saved_attendees) if result.save_results else 0,
            errors=len(result.save_results.errors) if result.save_results else 0,
        )
        return result

    @staticmethod
    def _parse(raw: dict[str, Any]) -> RawSubmission:
        try:
            return RawSubmission.model_validate(raw)
        except PydanticValidationError as exc:
            raise MalformedSubmission(
                f"Malformed submission: {exc.error_count()} invalid field(s)"
            ) from exc

    @classmethod
    def _normalize_all(
        cls, submissions: list[dict[str, Any]], kind: ImportKind
    ) -> tuple[list[NormalizedRecord], list[SaveError]]:
        records: list[NormalizedRecord] = []
        errors: list[SaveError] = []
        for raw in submissions:
            try:
                records.append(normalize_submission(cls._parse(raw), kind))
            except (MalformedSubmission, MissingRequiredField) as exc:
                errors.append(
                    SaveError(submission=json.dumps(raw, default=str), error=str(exc))
                )
                logger.warning("import.submission_rejected", reason=str(exc))
        return records, errors

    @classmethod
    def _emails_of(cls, submissions: list[dict[str, Any]]) -> list[str]:
        emails: list[str] = []
        for raw in submissions:
            try:
                emails.append(resolve_email(collapse_values(cls._parse(raw).values)))
            except (MalformedSubmission, MissingRequiredField):
                continue
        return emails
