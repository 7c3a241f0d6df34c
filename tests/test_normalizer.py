"""Unit tests for the submission field normalizer.

Pure functions only -- no database or HTTP.
"""

from __future__ import annotations

import json

import pytest

from src.registrar.attendees.schemas import (
    ImportKind,
    ProfileQuestion,
    RawSubmission,
    SubmissionField,
)
from src.registrar.errors import MissingEmailField, MissingRequiredField
from src.registrar.intake.normalizer import (
    AVAILABILITY_FIELD,
    HOTEL_FIELD,
    SPEAKING_TOPIC_FIELD,
    clean_text,
    collapse_values,
    first_value,
    format_answer,
    normalize_submission,
    resolve_email,
)


def _submission(*pairs: tuple[str, str], submitted_at: int = 1700000000000) -> RawSubmission:
    return RawSubmission(
        submittedAt=submitted_at,
        values=[SubmissionField(name=n, value=v) for n, v in pairs],
    )


# ── collapse_values ─────────────────────────────────────────────────────────


class TestCollapseValues:
    def test_single_values_stay_strings(self):
        values = collapse_values(
            [SubmissionField(name="email", value="a@x.com"), SubmissionField(name="company", value="X")]
        )
        assert values == {"email": "a@x.com", "company": "X"}

    def test_repeated_names_become_ordered_lists(self):
        values = collapse_values(
            [
                SubmissionField(name="topics", value="Cloud"),
                SubmissionField(name="email", value="a@x.com"),
                SubmissionField(name="topics", value="AI"),
                SubmissionField(name="topics", value="Security"),
            ]
        )
        assert values["topics"] == ["Cloud", "AI", "Security"]
        assert list(values) == ["topics", "email"]

    def test_first_value_joins_lists(self):
        assert first_value({"a": "", "b": ["x", "y"]}, ("a", "b")) == "x; y"


# ── resolve_email ───────────────────────────────────────────────────────────


class TestResolveEmail:
    @pytest.mark.parametrize("key", ["email", "Email", "EMAIL"])
    def test_accepts_every_variant(self, key):
        assert resolve_email({key: "jane@acme.com"}) == "jane@acme.com"

    def test_lowercase_variant_wins(self):
        assert resolve_email({"Email": "b@x.com", "email": "a@x.com"}) == "a@x.com"

    def test_repeated_email_uses_first_non_empty(self):
        assert resolve_email({"email": ["", "second@x.com", "third@x.com"]}) == "second@x.com"

    def test_missing_email_raises(self):
        with pytest.raises(MissingEmailField, match="No email field found"):
            resolve_email({"firstname": "Jane"})

    def test_blank_email_raises(self):
        with pytest.raises(MissingRequiredField):
            resolve_email({"email": "   "})


# ── clean_text / format_answer ──────────────────────────────────────────────


class TestFormatting:
    def test_clean_text_decodes_entities_then_strips_tags(self):
        assert clean_text("&lt;b&gt;Hi&lt;/b&gt; &amp; bye") == "Hi & bye"

    def test_clean_text_strips_literal_tags(self):
        assert clean_text("<p>Cloud &quot;first&quot;</p>") == 'Cloud "first"'

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", "Yes"), ("TRUE", "Yes"), ("false", "No"), ("False", "No")],
    )
    def test_booleans(self, raw, expected):
        assert format_answer(raw) == expected

    def test_epoch_milliseconds_become_short_date(self):
        assert format_answer("1700000000000") == "11/14/23"

    def test_other_digit_strings_untouched(self):
        assert format_answer("170000000000") == "170000000000"
        assert format_answer("5000") == "5000"

    def test_plain_text_passes_through(self):
        assert format_answer("Chief Information Officer") == "Chief Information Officer"


# ── normalize_submission ────────────────────────────────────────────────────


class TestInitialRegistration:
    def test_maps_canonical_fields(self):
        record = normalize_submission(
            _submission(
                ("email", " jane@acme.com "),
                ("firstname", "Jane"),
                ("lastname", "Doe"),
                ("company", "Acme &amp; Sons"),
                ("jobtitle", "CIO"),
                ("industry", "Retail"),
                ("phone", "555-0100"),
            ),
            ImportKind.INITIAL_REGISTRATION,
        )

        assert record.email == "jane@acme.com"
        assert record.name == "Jane Doe"
        assert record.attributes == {
            "first_name": "Jane",
            "last_name": "Doe",
            "company": "Acme & Sons",
            "title": "CIO",
            "industry": "Retail",
            "cellphone": "555-0100",
        }

    def test_availability_goes_to_notes(self):
        record = normalize_submission(
            _submission(("email", "a@x.com"), (AVAILABILITY_FIELD, "Mon 10am")),
            ImportKind.INITIAL_REGISTRATION,
        )
        assert record.attributes["notes"] == "Availability: Mon 10am"

    def test_empty_answers_are_omitted(self):
        record = normalize_submission(
            _submission(("email", "a@x.com"), ("company", ""), ("jobtitle", "  ")),
            ImportKind.INITIAL_REGISTRATION,
        )
        assert record.attributes == {}

    def test_name_falls_back_to_email(self):
        record = normalize_submission(
            _submission(("email", "a@x.com")), ImportKind.INITIAL_REGISTRATION
        )
        assert record.name == "a@x.com"

    def test_submission_is_serialized_with_hubspot_names(self):
        record = normalize_submission(
            _submission(("email", "a@x.com")), ImportKind.INITIAL_REGISTRATION
        )
        payload = json.loads(record.submission)
        assert payload["submittedAt"] == 1700000000000
        assert payload["values"] == [{"name": "email", "value": "a@x.com"}]

    def test_missing_email_raises(self):
        with pytest.raises(MissingEmailField):
            normalize_submission(
                _submission(("firstname", "Jane")), ImportKind.INITIAL_REGISTRATION
            )


class TestExecutiveProfile:
    def test_maps_profile_fields_and_keeps_raw_answers(self):
        record = normalize_submission(
            _submission(
                ("email", "jane@acme.com"),
                ("firstname", "Jane"),
                ("mobilephone", "555-0199"),
                ("total_company_employees", "1000-4999"),
                ("industry___exec_profile", "Retail"),
                ("dietary_restrictions", "Vegetarian"),
                (HOTEL_FIELD, "Yes"),
                ("topics", "Cloud"),
                ("topics", "AI"),
            ),
            ImportKind.EXECUTIVE_PROFILE,
        )

        attrs = record.attributes
        assert attrs["cellphone"] == "555-0199"
        assert attrs["company_size"] == "1000-4999"
        assert attrs["industry"] == "Retail"
        assert attrs["dietary_notes"] == "Vegetarian"
        assert attrs["hotel"] == "Required"
        assert attrs["executive_profile_received"] is True
        assert attrs["executive_profile_data"][0] == ProfileQuestion(
            question="email", answer="jane@acme.com"
        )
        assert attrs["executive_profile_data"][-1] == ProfileQuestion(
            question="topics", answer=["Cloud", "AI"]
        )

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("no", "Not Required"), ("NO", "Not Required"), ("Maybe", "Maybe")],
    )
    def test_hotel_requirement(self, raw, expected):
        record = normalize_submission(
            _submission(("email", "a@x.com"), (HOTEL_FIELD, raw)),
            ImportKind.EXECUTIVE_PROFILE,
        )
        assert record.attributes["hotel"] == expected

    def test_notes_sections(self):
        record = normalize_submission(
            _submission(
                ("email", "a@x.com"),
                (SPEAKING_TOPIC_FIELD, "Zero trust"),
                (SPEAKING_TOPIC_FIELD, "SASE"),
                ("please_specify", "Arriving late"),
            ),
            ImportKind.EXECUTIVE_PROFILE,
        )
        assert record.attributes["notes"] == (
            "Additional Speaking Topic: Zero trust, SASE\n\nAdditional Notes: Arriving late"
        )

    def test_normalization_is_deterministic(self):
        submission = _submission(("email", "a@x.com"), ("company", "X"), ("topics", "A"))
        first = normalize_submission(submission, ImportKind.EXECUTIVE_PROFILE)
        second = normalize_submission(submission, ImportKind.EXECUTIVE_PROFILE)
        assert first == second
