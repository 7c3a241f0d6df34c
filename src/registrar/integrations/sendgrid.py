"""Outcome email sender backed by SendGrid dynamic templates.

Template resolution: the forum's per-outcome override when set, otherwise the
default template of that outcome. After SendGrid accepts a message the send
is appended to the notification ledger; nothing is written on failure.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from src.registrar.attendees.ledger import NotificationLedger
from src.registrar.attendees.schemas import (
    AttendeeRead,
    ForumRead,
    ForumSettingsData,
    OutcomeType,
)
from src.registrar.core.monitoring import outcome_emails_total
from src.registrar.errors import ProviderError

logger = structlog.get_logger(__name__)

PROVIDER = "sendgrid"

DEFAULT_TEMPLATE_IDS: dict[OutcomeType, str] = {
    OutcomeType.APPROVED: "d-2c170632a3744050b42a7b9133910a89",
    OutcomeType.DENIED: "d-1b0a1b0ffda74f8e83cb92ecef704ac0",
    OutcomeType.WAITLISTED: "d-e8dfbd20fcf64f379c3786b3713a3c4a",
}


class EmailSendResult(BaseModel):
    success: bool
    template_id: str
    error: str | None = None


def resolve_template_id(
    outcome: OutcomeType, forum_settings: ForumSettingsData | None = None
) -> str:
    """Forum override for the outcome if configured, else the default id."""
    outcome = OutcomeType(outcome)
    if forum_settings is not None:
        override = getattr(forum_settings, f"{outcome.value}_email_template_id", None)
        if override:
            return override
    return DEFAULT_TEMPLATE_IDS[outcome]


def format_event_date(value: str) -> str:
    """Render an ISO date as e.g. ``March 14, 2025``; other text is returned as-is."""
    if not value:
        return ""
    try:
        parsed = date.fromisoformat(value[:10])
    except ValueError:
        return value
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def build_template_data(attendee: AttendeeRead, forum: ForumRead) -> dict[str, Any]:
    return {
        "firstName": attendee.first_name,
        "lastName": attendee.last_name,
        "company": attendee.company,
        "title": attendee.title,
        "eventName": forum.name,
        "eventDate": format_event_date(forum.date),
        "eventCity": forum.city,
        "eventVenue": forum.venue,
        "eventSponsor": forum.brand,
        "forumName": forum.name,
    }


class OutcomeEmailSender:
    """Sends approved/denied/waitlisted emails and records them in the ledger.

    Args:
        api_key: SendGrid API key.
        ledger: NotificationLedger to append successful sends to.
        from_email: Verified sender address.
        from_name: Sender display name.
        base_url: SendGrid API root.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        ledger: NotificationLedger,
        from_email: str = "registrations@mail.sincusa.com",
        from_name: str = "SINC USA",
        base_url: str = "https://api.sendgrid.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._ledger = ledger
        self._from_email = from_email
        self._from_name = from_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def send(
        self,
        attendee: AttendeeRead,
        forum: ForumRead,
        outcome: OutcomeType,
        forum_settings: ForumSettingsData | None = None,
    ) -> EmailSendResult:
        """Send one outcome email.

        Provider failures are returned as ``success=False`` with the
        provider's message rather than raised, so the caller can show it.
        """
        outcome = OutcomeType(outcome)
        template_id = resolve_template_id(outcome, forum_settings)
        recipient_name = f"{attendee.first_name} {attendee.last_name}"

        try:
            await self._post_mail(
                to_email=attendee.email,
                to_name=recipient_name,
                template_id=template_id,
                template_data=build_template_data(attendee, forum),
            )
        except ProviderError as exc:
            logger.error(
                "sendgrid.send_failed",
                attendee_id=attendee.id,
                outcome=outcome.value,
                status_code=exc.status_code,
                error=exc.message,
            )
            outcome_emails_total.labels(outcome=outcome.value, status="failed").inc()
            return EmailSendResult(success=False, template_id=template_id, error=exc.message)

        outcome_emails_total.labels(outcome=outcome.value, status="sent").inc()
        logger.info(
            "sendgrid.email_sent",
            attendee_id=attendee.id,
            outcome=outcome.value,
            template_id=template_id,
        )

        try:
            await self._ledger.record_send(
                attendee.id, outcome, attendee.email, recipient_name
            )
        except Exception as exc:
            logger.warning(
                "sendgrid.ledger_write_failed",
                attendee_id=attendee.id,
                outcome=outcome.value,
                error=str(exc),
            )

        return EmailSendResult(success=True, template_id=template_id)

    async def _post_mail(
        self,
        to_email: str,
        to_name: str,
        template_id: str,
        template_data: dict[str, Any],
    ) -> None:
        if not self._api_key:
            raise ProviderError(PROVIDER, "SendGrid API key not configured")

        payload = {
            "personalizations": [
                {
                    "to": [{"email": to_email, "name": to_name}],
                    "dynamic_template_data": template_data,
                }
            ],
            "from": {"email": self._from_email, "name": self._from_name},
            "template_id": template_id,
        }

        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/v3/mail/send", json=payload)
            except httpx.HTTPError as exc:
                raise ProviderError(PROVIDER, f"SendGrid request failed: {exc}") from exc

        if response.status_code == 403:
            raise ProviderError(
                PROVIDER,
                f'SendGrid Authentication Error (403): The from address "{self._from_email}" '
                "is not verified in SendGrid.",
                status_code=403,
            )
        if response.status_code == 401:
            raise ProviderError(
                PROVIDER,
                "SendGrid API Key Error (401): Invalid or expired API key.",
                status_code=401,
            )
        if response.is_error:
            raise ProviderError(
                PROVIDER,
                f"SendGrid API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
