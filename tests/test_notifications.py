"""Tests for the SendGrid outcome email sender and the Slack notifier."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from src.registrar.attendees.schemas import (
    AttendeeRead,
    ForumRead,
    ForumSettingsData,
    OutcomeType,
)
from src.registrar.errors import ProviderError
from src.registrar.integrations.sendgrid import (
    DEFAULT_TEMPLATE_IDS,
    OutcomeEmailSender,
    build_template_data,
    format_event_date,
    resolve_template_id,
)
from src.registrar.integrations.slack import (
    URGENCY_PHRASES,
    SlackNotifier,
    approval_message,
)

ATTENDEE = AttendeeRead(
    id="6f1c2f3e-0000-4000-8000-000000000001",
    forum_id="forum-1",
    email="jane@acme.com",
    first_name="Jane",
    last_name="Doe",
    company="Acme Corp",
    title="CIO",
)
FORUM = ForumRead(
    id="forum-1",
    name="Dallas IT & Security Forum",
    brand="SINC USA",
    date="2025-03-14",
    city="Dallas",
    venue="The Adolphus",
)


# ── SendGrid ────────────────────────────────────────────────────────────────


class TestTemplateResolution:
    def test_defaults(self):
        for outcome in OutcomeType:
            assert resolve_template_id(outcome) == DEFAULT_TEMPLATE_IDS[outcome]

    def test_forum_override(self):
        settings = ForumSettingsData(denied_email_template_id="d-custom")
        assert resolve_template_id(OutcomeType.DENIED, settings) == "d-custom"
        assert resolve_template_id(OutcomeType.APPROVED, settings) == (
            DEFAULT_TEMPLATE_IDS[OutcomeType.APPROVED]
        )

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2025-03-14", "March 14, 2025"),
            ("2025-11-02T09:00:00", "November 2, 2025"),
            ("TBD", "TBD"),
            ("", ""),
        ],
    )
    def test_event_date(self, raw, expected):
        assert format_event_date(raw) == expected

    def test_template_data(self):
        data = build_template_data(ATTENDEE, FORUM)
        assert data["firstName"] == "Jane"
        assert data["eventName"] == "Dallas IT & Security Forum"
        assert data["eventSponsor"] == "SINC USA"
        assert data["eventVenue"] == "The Adolphus"


class TestOutcomeEmailSender:
    def _sender(self, handler, ledger, api_key="SG.test") -> OutcomeEmailSender:
        return OutcomeEmailSender(
            api_key=api_key, ledger=ledger, transport=httpx.MockTransport(handler)
        )

    async def test_success_records_ledger_entry(self):
        ledger = AsyncMock()
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202)

        result = await self._sender(handler, ledger).send(ATTENDEE, FORUM, OutcomeType.APPROVED)

        assert result.success is True
        assert result.template_id == DEFAULT_TEMPLATE_IDS[OutcomeType.APPROVED]
        ledger.record_send.assert_awaited_once_with(
            ATTENDEE.id, OutcomeType.APPROVED, "jane@acme.com", "Jane Doe"
        )
        assert requests[0].url.path == "/v3/mail/send"
        assert requests[0].headers["Authorization"] == "Bearer SG.test"
        body = json.loads(requests[0].content)
        assert body["from"] == {"email": "registrations@mail.sincusa.com", "name": "SINC USA"}

    @pytest.mark.parametrize(
        ("status_code", "message"),
        [
            (403, "SendGrid Authentication Error (403)"),
            (401, "SendGrid API Key Error (401): Invalid or expired API key."),
            (500, "SendGrid API error: 500 - down"),
        ],
    )
    async def test_provider_errors_are_returned(self, status_code, message):
        ledger = AsyncMock()

        result = await self._sender(
            lambda r: httpx.Response(status_code, text="down"), ledger
        ).send(ATTENDEE, FORUM, OutcomeType.DENIED)

        assert result.success is False
        assert result.error.startswith(message)
        ledger.record_send.assert_not_awaited()

    async def test_unverified_sender_message_names_address(self):
        result = await self._sender(lambda r: httpx.Response(403), AsyncMock()).send(
            ATTENDEE, FORUM, OutcomeType.WAITLISTED
        )
        assert '"registrations@mail.sincusa.com" is not verified in SendGrid.' in result.error

    async def test_missing_api_key(self):
        ledger = AsyncMock()
        result = await self._sender(lambda r: httpx.Response(202), ledger, api_key="").send(
            ATTENDEE, FORUM, OutcomeType.APPROVED
        )
        assert result.success is False
        assert result.error == "SendGrid API key not configured"

    async def test_ledger_failure_after_send_is_not_an_email_failure(self):
        ledger = AsyncMock()
        ledger.record_send.side_effect = RuntimeError("database unavailable")

        result = await self._sender(lambda r: httpx.Response(202), ledger).send(
            ATTENDEE, FORUM, OutcomeType.APPROVED
        )

        assert result.success is True


# ── Slack ───────────────────────────────────────────────────────────────────


class TestSlackNotifier:
    async def test_approval_message(self):
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, text="ok")

        notifier = SlackNotifier("https://hooks.slack.test/x", transport=httpx.MockTransport(handler))
        await notifier.notify_approval(ATTENDEE, FORUM)

        assert bodies == [{"text": approval_message(ATTENDEE, FORUM)}]
        assert "HubSpot" in bodies[0]["text"]

    async def test_preliminary_message_uses_chosen_phrase(self):
        bodies: list[dict] = []
        picked: list[tuple[str, ...]] = []

        def choose(phrases):
            picked.append(tuple(phrases))
            return phrases[-1]

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200)

        notifier = SlackNotifier(
            "https://hooks.slack.test/x", transport=httpx.MockTransport(handler), choose=choose
        )
        await notifier.notify_preliminary_approval(ATTENDEE, FORUM)

        assert picked == [URGENCY_PHRASES]
        assert bodies[0]["text"].endswith(URGENCY_PHRASES[-1])
        assert "pending submission of their full Executive Profile" in bodies[0]["text"]

    async def test_rejected_post_raises(self):
        notifier = SlackNotifier(
            "https://hooks.slack.test/x",
            transport=httpx.MockTransport(lambda r: httpx.Response(404, text="no_service")),
        )
        with pytest.raises(ProviderError) as exc_info:
            await notifier.send("hello")
        assert exc_info.value.status_code == 404

    async def test_unconfigured_webhook_raises(self):
        with pytest.raises(ProviderError, match="not configured"):
            await SlackNotifier("").send("hello")

    def test_ten_urgency_phrases(self):
        assert len(URGENCY_PHRASES) == 10
