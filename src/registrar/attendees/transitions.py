"""Stage transition state machine.

Couples attendee stage commits to outcome emails through an explicit pending
state instead of callbacks:

    request(target)
      |- same stage ................................. no-op
      |- in_queue / preliminary_approved ............ commit
      '- approved / denied / waitlisted
           |- forum unresolvable .................... ForumUnavailable, no commit
           |- ledger already has a sent entry ....... commit, no prompt
           '- otherwise ............................. pending_confirmation
    resolve(target, confirmed)
      |- confirmed=False ............................ commit, no email
      '- confirmed=True ............................. commit, send email
                                                      (denied -> denial reason required)

Stage commits are never blocked by email or chat outcomes. A failed send
leaves the stage committed without a ledger entry; the provider message is
returned to the caller.
"""

from __future__ import annotations

import structlog

from src.registrar.attendees.ledger import NotificationLedger
from src.registrar.attendees.repository import AttendeeRepository
from src.registrar.attendees.schemas import (
    AttendeeRead,
    AttendeeStage,
    ForumRead,
    OutcomeType,
    TransitionResult,
)
from src.registrar.errors import ForumUnavailable, ProviderError, ValidationError
from src.registrar.integrations.forums import ForumSync
from src.registrar.integrations.sendgrid import OutcomeEmailSender
from src.registrar.integrations.slack import SlackNotifier

logger = structlog.get_logger(__name__)

MIN_DENIAL_REASON_LENGTH = 10

CHAT_NOTIFIED_STAGES = frozenset({AttendeeStage.APPROVED, AttendeeStage.PRELIMINARY_APPROVED})


def _coerce_stage(stage: AttendeeStage | str) -> AttendeeStage:
    try:
        return AttendeeStage(stage)
    except ValueError:
        raise ValidationError(f"Unknown stage: {stage}") from None


class StageTransitionMachine:
    """Drives attendee stage changes and their notification side effects.

    Args:
        repository: AttendeeRepository for attendee, forum and settings access.
        ledger: NotificationLedger consulted before every email offer.
        email_sender: OutcomeEmailSender for outcome emails.
        notifier: Optional SlackNotifier for the operations channel.
        forum_sync: Optional ForumSync used when the forum is not mirrored locally.
    """

    def __init__(
        self,
        repository: AttendeeRepository,
        ledger: NotificationLedger,
        email_sender: OutcomeEmailSender,
        notifier: SlackNotifier | None = None,
        forum_sync: ForumSync | None = None,
    ) -> None:
        self._repository = repository
        self._ledger = ledger
        self._email_sender = email_sender
        self._notifier = notifier
        self._forum_sync = forum_sync

    # ── Public API ──────────────────────────────────────────────────────────

    async def request(self, attendee_id: str, target: AttendeeStage | str) -> TransitionResult:
        """Ask to move an attendee to ``target``.

        Raises:
            AttendeeNotFound: Unknown attendee.
            ForumUnavailable: Emailable target and the forum cannot be resolved.
        """
        target = _coerce_stage(target)
        attendee = await self._repository.require_attendee(attendee_id)

        if attendee.stage == target:
            return TransitionResult(
                attendee_id=attendee.id, from_stage=attendee.stage, target_stage=target
            )

        outcome = OutcomeType.from_stage(target)
        if outcome is None:
            return await self._commit(attendee, target)

        forum = await self._resolve_forum(attendee.forum_id)

        if await self._ledger.has_been_sent(attendee.id, outcome):
            logger.info(
                "transition.email_already_sent",
                attendee_id=attendee.id,
                outcome=outcome.value,
            )
            return await self._commit(attendee, target, forum)

        logger.info(
            "transition.pending_confirmation",
            attendee_id=attendee.id,
            from_stage=attendee.stage.value,
            target_stage=target.value,
        )
        return TransitionResult(
            attendee_id=attendee.id,
            from_stage=attendee.stage,
            target_stage=target,
            pending_confirmation=outcome,
        )

    async def resolve(
        self, attendee_id: str, target: AttendeeStage | str, confirmed: bool
    ) -> TransitionResult:
        """Answer a pending confirmation.

        Either way the stage is committed. Only a confirmation sends the
        email, and only if the ledger still has no sent entry for the pair.
        """
        target = _coerce_stage(target)
        outcome = OutcomeType.from_stage(target)
        if outcome is None:
            raise ValidationError(f"Stage {target.value} does not need confirmation")

        attendee = await self._repository.require_attendee(attendee_id)
        forum = await self._resolve_forum(attendee.forum_id)

        if not confirmed:
            logger.info("transition.email_declined", attendee_id=attendee.id, outcome=outcome.value)
            return await self._commit(attendee, target, forum)

        if await self._ledger.has_been_sent(attendee.id, outcome):
            logger.info(
                "transition.email_already_sent",
                attendee_id=attendee.id,
                outcome=outcome.value,
            )
            return await self._commit(attendee, target, forum)

        result = await self._commit(attendee, target, forum)

        committed = await self._repository.require_attendee(attendee.id)
        forum_settings = await self._repository.get_forum_settings(attendee.forum_id)
        sent = await self._email_sender.send(committed, forum, outcome, forum_settings)

        result.email_sent = sent.success
        result.email_error = sent.error
        result.requires_denial_reason = sent.success and target == AttendeeStage.DENIED
        return result

    async def submit_denial_reason(self, attendee_id: str, reason: str) -> AttendeeRead:
        """Store the reason for a denial.

        Raises:
            ValidationError: Reason shorter than 10 characters after trimming,
                or the attendee is not in the denied stage.
        """
        cleaned = (reason or "").strip()
        if len(cleaned) < MIN_DENIAL_REASON_LENGTH:
            raise ValidationError(
                f"Denial reason must be at least {MIN_DENIAL_REASON_LENGTH} characters"
            )

        attendee = await self._repository.require_attendee(attendee_id)
        if attendee.stage != AttendeeStage.DENIED:
            raise ValidationError("Denial reason can only be set on a denied attendee")

        updated = await self._repository.set_denial_reason(attendee.id, cleaned)
        logger.info("transition.denial_reason_saved", attendee_id=attendee.id)
        return updated

    # ── Internals ───────────────────────────────────────────────────────────

    async def _commit(
        self,
        attendee: AttendeeRead,
        target: AttendeeStage,
        forum: ForumRead | None = None,
    ) -> TransitionResult:
        await self._repository.update_stage(attendee.id, target)
        logger.info(
            "transition.committed",
            attendee_id=attendee.id,
            from_stage=attendee.stage.value,
            target_stage=target.value,
        )

        result = TransitionResult(
            attendee_id=attendee.id,
            from_stage=attendee.stage,
            target_stage=target,
            committed=True,
        )
        if target in CHAT_NOTIFIED_STAGES:
            result.chat_notified = await self._notify_chat(attendee, target, forum)
        return result

    async def _notify_chat(
        self,
        attendee: AttendeeRead,
        target: AttendeeStage,
        forum: ForumRead | None,
    ) -> bool:
        if self._notifier is None:
            return False
        try:
            if forum is None:
                forum = await self._resolve_forum(attendee.forum_id)
            if target == AttendeeStage.APPROVED:
                await self._notifier.notify_approval(attendee, forum)
            else:
                await self._notifier.notify_preliminary_approval(attendee, forum)
        except (ProviderError, ForumUnavailable) as exc:
            logger.warning(
                "transition.chat_notification_failed",
                attendee_id=attendee.id,
                target_stage=target.value,
                error=str(exc),
            )
            return False
        return True

    async def _resolve_forum(self, forum_id: str) -> ForumRead:
        forum = await self._repository.get_forum(forum_id)
        if forum is not None:
            return forum

        if self._forum_sync is None or not self._forum_sync.configured:
            raise ForumUnavailable(forum_id)

        try:
            return await self._forum_sync.sync(forum_id)
        except ProviderError as exc:
            logger.warning("transition.forum_sync_failed", forum_id=forum_id, error=str(exc))
            raise ForumUnavailable(forum_id) from exc
