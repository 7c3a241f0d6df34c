"""Form definition enricher.

Rewrites stored executive-profile answers into human-readable form using the
HubSpot form definition: field codes become their labels, option values
become option labels, booleans and epoch dates are formatted.

Key behaviors:
- Field resolution: exact name -> case-insensitive -> underscore/hyphen-stripped
- Only the part of a question before the first ';' is used for lookup
- Unresolvable items pass through unchanged
- enrich_profile_data() is pure; ProfileEnricher does the I/O around it
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import structlog

from src.registrar.attendees.repository import AttendeeRepository
from src.registrar.attendees.schemas import Answer, EnrichmentResults, ProfileQuestion
from src.registrar.errors import ProviderError
from src.registrar.intake.normalizer import clean_text, format_answer

logger = structlog.get_logger(__name__)

CHECKBOX_FIELD_TYPES = frozenset({"booleancheckbox", "checkbox", "multiple_checkboxes"})

_SEPARATORS_RE = re.compile(r"[_-]")


@dataclass
class FormFieldIndex:
    """Name lookup over every field of a form definition, dependents included."""

    by_name: dict[str, dict[str, Any]] = field(default_factory=dict)
    by_lower_name: dict[str, dict[str, Any]] = field(default_factory=dict)

    def add(self, form_field: dict[str, Any]) -> None:
        name = form_field.get("name") or ""
        self.by_name[name] = form_field
        self.by_lower_name[name.lower()] = form_field

    def resolve(self, question: str) -> dict[str, Any] | None:
        """Find the field a stored question refers to, or None."""
        base_name = question.split(";")[0]

        found = self.by_name.get(base_name)
        if found is not None:
            return found

        found = self.by_lower_name.get(base_name.lower())
        if found is not None:
            return found

        normalized = _SEPARATORS_RE.sub("", base_name).lower()
        for key, candidate in self.by_lower_name.items():
            if _SEPARATORS_RE.sub("", key) == normalized:
                return candidate
        return None

    def __len__(self) -> int:
        return len(self.by_name)


def build_field_index(form_definition: dict[str, Any]) -> FormFieldIndex:
    """Flatten a form definition into a FormFieldIndex.

    Raises:
        ProviderError: The definition has no ``fieldGroups`` list.
    """
    groups = form_definition.get("fieldGroups")
    if not isinstance(groups, list):
        raise ProviderError(
            "hubspot",
            "Invalid form definition: fieldGroups is missing or not an array",
        )

    index = FormFieldIndex()

    def visit(form_field: dict[str, Any]) -> None:
        index.add(form_field)
        for wrapper in form_field.get("dependentFields") or []:
            dependent = wrapper.get("dependentField")
            if dependent:
                visit(dependent)

    for group in groups:
        for form_field in group.get("fields") or []:
            visit(form_field)

    return index


# ── Pure Enrichment ─────────────────────────────────────────────────────────


def _enrich_value(raw: str, form_field: dict[str, Any]) -> str:
    for option in form_field.get("options") or []:
        if option.get("value") == raw:
            return clean_text(option.get("label") or "")
    return format_answer(raw)


def _enrich_answer(answer: Any, form_field: dict[str, Any]) -> Answer:
    if isinstance(answer, list):
        return [_enrich_value(str(a), form_field) for a in answer]

    if isinstance(answer, str):
        if form_field.get("fieldType") in CHECKBOX_FIELD_TYPES and ";" in answer:
            parts = [p.strip() for p in answer.split(";")]
            return [_enrich_value(p, form_field) for p in parts if p]
        return _enrich_value(answer, form_field)

    return str(answer)


def enrich_profile_data(
    items: list[ProfileQuestion], index: FormFieldIndex
) -> list[ProfileQuestion]:
    """Return the enriched copy of ``items``; the input is not modified."""
    enriched: list[ProfileQuestion] = []
    for item in items:
        form_field = index.resolve(item.question)
        if form_field is None:
            enriched.append(item.model_copy())
            continue
        enriched.append(
            ProfileQuestion(
                question=clean_text(form_field.get("label") or ""),
                answer=_enrich_answer(item.answer, form_field),
            )
        )
    return enriched


# ── Forum-wide Enrichment ───────────────────────────────────────────────────


class ProfileEnricher:
    """Enriches every stored executive profile of a forum.

    A successful enrichment stamps ``executive_profile_enriched_at``; stamped
    attendees are skipped unless ``force`` is set, so labels are never
    re-resolved against already-enriched text.

    Args:
        repository: AttendeeRepository for reads and writes.
        hubspot: HubSpotClient used to fetch the form definition.
    """

    def __init__(self, repository: AttendeeRepository, hubspot: Any) -> None:
        self._repository = repository
        self._hubspot = hubspot

    async def enrich_forum(
        self, forum_id: str, form_id: str, force: bool = False
    ) -> EnrichmentResults:
        try:
            definition = await self._hubspot.get_form_definition(form_id)
            index = build_field_index(definition)
        except ProviderError as exc:
            logger.warning(
                "enrichment.definition_unavailable",
                forum_id=forum_id,
                form_id=form_id,
                error=str(exc),
            )
            return EnrichmentResults(errors=[str(exc)])

        results = EnrichmentResults()
        attendees = await self._repository.list_profiles_for_enrichment(forum_id)

        for attendee in attendees:
            if attendee.executive_profile_enriched_at is not None and not force:
                results.skipped += 1
                continue
            try:
                enriched = enrich_profile_data(attendee.executive_profile_data or [], index)
                await self._repository.save_enriched_profile(attendee.id, enriched)
                results.enriched += 1
            except Exception as exc:
                results.errors.append(f"{attendee.email}: {exc}")
                logger.error(
                    "enrichment.attendee_failed",
                    attendee_id=attendee.id,
                    error=str(exc),
                )

        logger.info(
            "enrichment.complete",
            forum_id=forum_id,
            form_fields=len(index),
            enriched=results.enriched,
            skipped=results.skipped,
            errors=len(results.errors),
        )
        return results
