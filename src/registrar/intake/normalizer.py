"""Field normalizer -- reduce raw HubSpot submissions to canonical attendee attributes.

Pure functions, no I/O:
- collapse_values(): repeated field names become ordered lists
- resolve_email(): email lookup across the known name variants
- clean_text() / format_answer(): entity decoding, tag stripping, yes/no and
  epoch-millisecond date rendering
- extract_initial_registration() / extract_executive_profile(): per-form field maps
- normalize_submission(): all of the above for one submission
"""

from __future__ import annotations

import html
import re
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from src.registrar.attendees.schemas import (
    Answer,
    ImportKind,
    NormalizedRecord,
    ProfileQuestion,
    RawSubmission,
    SubmissionField,
)
from src.registrar.errors import MissingEmailField

EMAIL_KEYS = ("email", "Email", "EMAIL")
FIRST_NAME_KEYS = ("firstname", "FirstName", "first_name")
LAST_NAME_KEYS = ("lastname", "LastName", "last_name")

AVAILABILITY_FIELD = (
    "please_provide_3_or_4_dates_and_time_slots_that_you_are_available"
    "_during_the_next_one_to_two_weeks"
)

# canonical attribute -> HubSpot field names, first non-empty wins
INITIAL_REGISTRATION_FIELDS: dict[str, tuple[str, ...]] = {
    "first_name": FIRST_NAME_KEYS,
    "last_name": LAST_NAME_KEYS,
    "company": ("company", "Company"),
    "title": ("jobtitle", "JobTitle", "job_title"),
    "industry": ("industry", "Industry"),
    "cellphone": ("phone", "Phone", "cellphone"),
}

EXECUTIVE_PROFILE_FIELDS: dict[str, tuple[str, ...]] = {
    "first_name": FIRST_NAME_KEYS,
    "last_name": LAST_NAME_KEYS,
    "company": ("company",),
    "title": ("jobtitle",),
    "industry": ("industry___exec_profile",),
    "cellphone": ("mobilephone",),
    "company_size": ("total_company_employees",),
    "airport": ("departing_airport_preference__code___if_you_are_requesting_a_flight_",),
    "gender": ("for_travelling_accommodations__choose_gender_as_listed_in_government_issued_id",),
    "dietary_notes": ("dietary_restrictions",),
}

HOTEL_FIELD = "hotel_accommodation_required_"
SPEAKING_TOPIC_FIELD = "if_you_have_another_topic_in_mind__please_share_below"
ADDITIONAL_NOTES_FIELD = "please_specify"

_TAG_RE = re.compile(r"<[^>]*>")
_EPOCH_MS_RE = re.compile(r"^\d{13}$")


# ── Value Helpers ───────────────────────────────────────────────────────────


def collapse_values(fields: Iterable[SubmissionField]) -> dict[str, Answer]:
    """Group submission fields by name.

    A name seen once maps to its string value; a repeated name maps to the
    list of its values in submission order. Key order follows first
    appearance.
    """
    grouped: dict[str, list[str]] = {}
    for field in fields:
        grouped.setdefault(field.name, []).append(field.value)
    return {name: vals[0] if len(vals) == 1 else vals for name, vals in grouped.items()}


def join_value(value: Answer | None, separator: str = "; ") -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return separator.join(value)
    return value


def first_value(values: dict[str, Answer], keys: Iterable[str]) -> str:
    """Return the first non-empty value among ``keys``, lists joined with '; '."""
    for key in keys:
        value = join_value(values.get(key))
        if value:
            return value
    return ""


def resolve_email(values: dict[str, Answer]) -> str:
    """Resolve the submitter's email or raise MissingEmailField.

    For a repeated email field the first non-empty element wins.
    """
    for key in EMAIL_KEYS:
        value = values.get(key)
        candidates = value if isinstance(value, list) else [value]
        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate.strip()
    raise MissingEmailField()


def clean_text(text: str) -> str:
    """Decode HTML entities, then strip HTML tags."""
    return _TAG_RE.sub("", html.unescape(text))


def format_answer(text: str) -> str:
    """Render a raw answer for humans.

    ``true``/``false`` become ``Yes``/``No``; a 13-digit epoch-millisecond
    string becomes ``M/D/YY`` in UTC.

    >>> format_answer("1700000000000")
    '11/14/23'
    """
    formatted = clean_text(text)

    if formatted.lower() == "true":
        formatted = "Yes"
    elif formatted.lower() == "false":
        formatted = "No"

    if _EPOCH_MS_RE.match(formatted):
        moment = datetime.fromtimestamp(int(formatted) / 1000, tz=timezone.utc)
        formatted = f"{moment.month}/{moment.day}/{moment.year % 100:02d}"

    return formatted


# ── Field Maps ──────────────────────────────────────────────────────────────


def _mapped_attributes(
    values: dict[str, Answer], field_map: dict[str, tuple[str, ...]]
) -> dict[str, Any]:
    attributes: dict[str, Any] = {}
    for attribute, keys in field_map.items():
        value = clean_text(first_value(values, keys)).strip()
        if value:
            attributes[attribute] = value
    return attributes


def extract_initial_registration(values: dict[str, Answer], email: str) -> dict[str, Any]:
    """Map an initial-registration submission onto attendee attributes.

    Empty answers are left out so a re-import never blanks a stored value.
    """
    attributes = _mapped_attributes(values, INITIAL_REGISTRATION_FIELDS)
    availability = clean_text(join_value(values.get(AVAILABILITY_FIELD))).strip()
    if availability:
        attributes["notes"] = f"Availability: {availability}"
    return attributes


def _hotel_requirement(value: str) -> str:
    lowered = value.lower()
    if lowered == "yes":
        return "Required"
    if lowered == "no":
        return "Not Required"
    return value


def _executive_profile_notes(values: dict[str, Answer]) -> str:
    sections: list[str] = []
    topic = join_value(values.get(SPEAKING_TOPIC_FIELD), ", ")
    if topic:
        sections.append(f"Additional Speaking Topic: {topic}")
    extra = join_value(values.get(ADDITIONAL_NOTES_FIELD), ", ")
    if extra:
        sections.append(f"Additional Notes: {extra}")
    return clean_text("\n\n".join(sections))


def raw_profile_data(values: dict[str, Answer]) -> list[ProfileQuestion]:
    """Every (field name, raw answer) pair in submission order."""
    return [ProfileQuestion(question=name, answer=answer) for name, answer in values.items()]


def extract_executive_profile(values: dict[str, Answer], email: str) -> dict[str, Any]:
    """Map an executive-profile submission onto attendee attributes.

    Besides the profile columns this always sets ``executive_profile_received``
    and stores the raw answers as ``executive_profile_data`` for later
    enrichment.
    """
    attributes = _mapped_attributes(values, EXECUTIVE_PROFILE_FIELDS)

    hotel = _hotel_requirement(clean_text(first_value(values, (HOTEL_FIELD,))).strip())
    if hotel:
        attributes["hotel"] = hotel

    notes = _executive_profile_notes(values)
    if notes:
        attributes["notes"] = notes

    attributes["executive_profile_received"] = True
    attributes["executive_profile_data"] = raw_profile_data(values)
    return attributes


_EXTRACTORS = {
    ImportKind.INITIAL_REGISTRATION: extract_initial_registration,
    ImportKind.EXECUTIVE_PROFILE: extract_executive_profile,
}


def normalize_submission(submission: RawSubmission, kind: ImportKind) -> NormalizedRecord:
    """Normalize one submission.

    Raises:
        MissingEmailField: No email variant holds a non-empty value.
    """
    values = collapse_values(submission.values)
    email = resolve_email(values)
    first_name = clean_text(first_value(values, FIRST_NAME_KEYS)).strip()
    last_name = clean_text(first_value(values, LAST_NAME_KEYS)).strip()

    return NormalizedRecord(
        email=email,
        name=f"{first_name} {last_name}".strip() or email,
        attributes=_EXTRACTORS[ImportKind(kind)](values, email),
        submission=submission.model_dump_json(by_alias=True),
    )
