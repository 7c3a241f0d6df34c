"""Operations-channel notifications through a Slack incoming webhook."""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence

import httpx
import structlog

from src.registrar.attendees.schemas import AttendeeRead, ForumRead
from src.registrar.errors import ProviderError

logger = structlog.get_logger(__name__)

PROVIDER = "slack"

URGENCY_PHRASES: tuple[str, ...] = (
    "Strike while the iron's hot!",
    "Time to move fast!",
    "Act now while they're engaged!",
    "Don't let this opportunity cool off!",
    "Momentum is key - follow up ASAP!",
    "The timing is perfect - reach out now!",
    "Capture their interest while it's fresh!",
    "Speed matters - connect immediately!",
    "Hot lead alert - engage quickly!",
    "Window of opportunity - act fast!",
)


def approval_message(attendee: AttendeeRead, forum: ForumRead) -> str:
    return (
        f"An approval was issued for {attendee.first_name} {attendee.last_name} "
        f"for {forum.name}. Please visit the forum backoffice to fill in details "
        "about this attendee so the deal can be created in HubSpot."
    )


def preliminary_approval_message(
    attendee: AttendeeRead, forum: ForumRead, urgency: str
) -> str:
    return (
        f"A preliminary approval was issued for {attendee.first_name} {attendee.last_name} "
        f"for {forum.name} and their registration is pending submission of their "
        f"full Executive Profile. {urgency}"
    )


class SlackNotifier:
    """Posts plain-text messages to the operations channel.

    Args:
        webhook_url: Slack incoming-webhook URL.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests inject httpx.MockTransport).
        choose: Picks the urgency phrase; defaults to ``random.choice``.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        choose: Callable[[Sequence[str]], str] = random.choice,
    ) -> None:
        self._webhook_url = webhook_url
        self._timeout = timeout
        self._transport = transport
        self._choose = choose

    async def send(self, text: str) -> None:
        """Post ``text`` to the channel.

        Raises:
            ProviderError: The webhook is not configured or Slack rejected the post.
        """
        if not self._webhook_url:
            raise ProviderError(PROVIDER, "Slack webhook URL not configured")

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(self._webhook_url, json={"text": text})
            except httpx.HTTPError as exc:
                raise ProviderError(PROVIDER, f"Slack request failed: {exc}") from exc

        if response.is_error:
            raise ProviderError(
                PROVIDER,
                f"Slack API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        logger.info("slack.message_sent")

    async def notify_approval(self, attendee: AttendeeRead, forum: ForumRead) -> None:
        await self.send(approval_message(attendee, forum))

    async def notify_preliminary_approval(self, attendee: AttendeeRead, forum: ForumRead) -> None:
        urgency = self._choose(URGENCY_PHRASES)
        await self.send(preliminary_approval_message(attendee, forum, urgency))
