"""Email sending and campaign dispatch.

This service is the core business logic that turns a campaign and an ordered
recipient list into delivered mail while staying under the acting user's
send quota. It handles:
- single sends gated by the per-user rate limiter
- the sequential campaign dispatch loop with throttle and fixed pauses
- cancellation of long dispatches through an asyncio.Event
- checkpointing so an interrupted dispatch can resume
- statistics hand-off to the repository
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Literal, Sequence

from app.adapters.mail.base import AbstractEmailSender, SendResult
from app.adapters.rate_limit.base import RateLimitDecision
from app.adapters.storage.base import AbstractCampaignRepository
from app.adapters.storage.models import DispatchCheckpoint, DispatchResult, EmailEvent, Recipient
from app.core.errors import (
    NotFoundError,
    RateLimitExceededError,
    SendFailureError,
    ValidationAppError,
)
from app.core.logging import get_campaign_id, set_campaign_id
from app.services.rate_limiter import EmailRateLimiter, UserId

logger = logging.getLogger(__name__)

ThrottlePolicy = Literal["count", "retry"]
PauseFn = Callable[[float, "asyncio.Event | None"], Awaitable[bool]]


async def cancellable_sleep(seconds: float, cancel_event: asyncio.Event | None = None) -> bool:
    """Sleep for ``seconds`` unless ``cancel_event`` is set first.

    Returns:
        True if the pause was interrupted by cancellation.
    """
    if cancel_event is None:
        if seconds > 0:
            await asyncio.sleep(seconds)
        return False

    if seconds <= 0:
        await asyncio.sleep(0)
        return cancel_event.is_set()

    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return False
    return True


class EmailService:
    """Sends email on behalf of a user and dispatches whole campaigns.

    Attributes:
        rate_limiter: Per-user send quota.
        sender: Mail transport.
        repository: Campaign storage and statistics sink.
        send_pause_seconds: Fixed pause after every dispatch attempt.
        throttle_policy: ``count`` records a throttled recipient as failed and
            moves on after waiting for the window to reset; ``retry`` waits and
            sends to the same recipient again.
        max_throttle_retries: Retry budget per recipient under ``retry``.
    """

    def __init__(
        self,
        rate_limiter: EmailRateLimiter,
        sender: AbstractEmailSender,
        repository: AbstractCampaignRepository,
        *,
        send_pause_seconds: float = 30.0,
        throttle_policy: ThrottlePolicy = "count",
        max_throttle_retries: int = 3,
        pause: PauseFn = cancellable_sleep,
    ) -> None:
        if throttle_policy not in ("count", "retry"):
            raise ValueError(f"unknown throttle policy: {throttle_policy}")

        self.rate_limiter = rate_limiter
        self.sender = sender
        self.repository = repository
        self.send_pause_seconds = send_pause_seconds
        self.throttle_policy = throttle_policy
        self.max_throttle_retries = max_throttle_retries
        self._pause = pause

    def check_rate_limit(self, user_id: UserId) -> RateLimitDecision:
        return self.rate_limiter.check(user_id)

    def record_send(self, user_id: UserId) -> None:
        self.rate_limiter.increment(user_id)

    def get_rate_status(self, user_id: UserId) -> RateLimitDecision:
        return self.rate_limiter.status(user_id)

    async def _log_event(self, event: EmailEvent) -> None:
        try:
            await self.repository.log_email_event(event)
        except Exception:
            logger.exception(
                "email_event.log_failed",
                extra={"event_type": event.event_type, "recipient": event.recipient},
            )

    async def send_email(
        self,
        user_id: UserId,
        recipient_address: str,
        subject: str,
        content: str,
        *,
        organization_id: int | None = None,
        campaign_id: int | None = None,
        contact_id: int | None = None,
    ) -> SendResult:
        """Send one message as ``user_id``, consuming one unit of their quota.

        Args:
            user_id: Acting user whose quota is charged.
            recipient_address: Destination address.
            subject: Subject line.
            content: HTML body.
            organization_id: Owner of the email event record (optional).
            campaign_id: Campaign the message belongs to (optional).
            contact_id: Contact the address belongs to (optional).

        Returns:
            SendResult of the accepted message.

        Raises:
            RateLimitExceededError: The user's window is exhausted.
            SendFailureError: The transport did not accept the message.
        """
        decision = self.rate_limiter.acquire(user_id)
        if not decision.allowed:
            raise RateLimitExceededError(
                code="email_rate_limit_exceeded",
                message=(
                    f"Email rate limit exceeded. Reset in {decision.retry_after_seconds} seconds"
                ),
                details={
                    "retry_after": decision.reset_in_seconds,
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                    "recipient": recipient_address,
                },
            )

        try:
            result = await self.sender.send(recipient_address, subject, content)
        except Exception as exc:
            logger.exception(
                "email.transport_error",
                extra={"user_id": str(user_id), "recipient": recipient_address},
            )
            result = SendResult.failed(f"{type(exc).__name__}: {exc}", retryable=True)

        if organization_id is not None:
            await self._log_event(
                EmailEvent(
                    organization_id=organization_id,
                    recipient=recipient_address,
                    event_type="sent" if result.success else "failed",
                    campaign_id=campaign_id,
                    contact_id=contact_id,
                    metadata={"message_id": result.message_id, "subject": subject}
                    if result.success
                    else {"reason": result.reason, "retryable": result.retryable},
                )
            )

        if not result.success:
            raise SendFailureError(
                code="email_send_failed",
                message=f"Failed to send email to {recipient_address}",
                details={
                    "reason": result.reason or "unknown",
                    "retryable": result.retryable,
                    "recipient": recipient_address,
                },
            )

        logger.info(
            "email.sent",
            extra={
                "user_id": str(user_id),
                "recipient": recipient_address,
                "subject": subject,
                "message_id": result.message_id,
                "remaining": decision.remaining,
            },
        )
        return result

    async def _load_start(
        self,
        campaign_id: int,
        total: int,
        resume: bool,
    ) -> tuple[int, int, int]:
        """Return (cursor, sent, failed) to start from."""
        if not resume:
            return 0, 0, 0

        checkpoint = await self.repository.get_checkpoint(campaign_id)
        if checkpoint is None:
            return 0, 0, 0
        if checkpoint.total_recipients != total or checkpoint.cursor > total:
            logger.warning(
                "dispatch.checkpoint_mismatch",
                extra={
                    "campaign_id": campaign_id,
                    "checkpoint_total": checkpoint.total_recipients,
                    "total_recipients": total,
                },
            )
            return 0, 0, 0

        logger.info(
            "dispatch.resuming",
            extra={"campaign_id": campaign_id, "cursor": checkpoint.cursor},
        )
        return checkpoint.cursor, checkpoint.sent_count, checkpoint.failed_count

    async def _save_checkpoint(self, checkpoint: DispatchCheckpoint) -> None:
        try:
            await self.repository.save_checkpoint(checkpoint)
        except Exception:
            logger.exception(
                "dispatch.checkpoint_failed",
                extra={"campaign_id": checkpoint.campaign_id, "cursor": checkpoint.cursor},
            )

    async def _publish_result(self, campaign_id: int, result: DispatchResult) -> None:
        try:
            await self.repository.record_dispatch_result(campaign_id, result)
            if not result.cancelled:
                await self.repository.clear_checkpoint(campaign_id)
        except Exception:
            logger.exception(
                "dispatch.statistics_failed",
                extra={
                    "campaign_id": campaign_id,
                    "sent_count": result.sent_count,
                    "failed_count": result.failed_count,
                },
            )

    async def dispatch_campaign(
        self,
        user_id: UserId,
        campaign_id: int,
        recipients: Sequence[Recipient],
        *,
        organization_id: int | None = None,
        cancel_event: asyncio.Event | None = None,
        resume: bool = False,
    ) -> DispatchResult:
        """Send a campaign to every recipient, one at a time, in order.

        Individual failures never abort the dispatch. After a throttled
        attempt the loop waits for the user's window to reset; after every
        attempt it waits ``send_pause_seconds``. No pause follows the last
        recipient.

        Args:
            user_id: Acting user whose quota is charged.
            campaign_id: Campaign to send.
            recipients: Ordered, pre-validated recipients.
            organization_id: Scope for the campaign lookup.
            cancel_event: Set to stop the dispatch at its next pause.
            resume: Continue from the stored checkpoint if it matches.

        Returns:
            DispatchResult with sent/failed/total counts.

        Raises:
            NotFoundError: The campaign does not exist.
            ValidationAppError: The recipient list is empty.
        """
        campaign = await self.repository.get_campaign(campaign_id, organization_id)
        if campaign is None:
            raise NotFoundError(
                code="campaign_not_found",
                message="Campaign not found",
                details={"campaign_id": str(campaign_id)},
            )

        recipients = list(recipients)
        total = len(recipients)
        if total == 0:
            raise ValidationAppError(
                code="empty_recipient_list",
                message="No active contacts to send the campaign to",
                details={"campaign_id": str(campaign_id)},
            )

        previous_campaign_id = get_campaign_id()
        set_campaign_id(str(campaign_id))
        try:
            index, sent, failed = await self._load_start(campaign_id, total, resume)
            await self.repository.mark_campaign_sending(campaign_id, total)

            logger.info(
                "dispatch.started",
                extra={
                    "user_id": str(user_id),
                    "total_recipients": total,
                    "cursor": index,
                    "throttle_policy": self.throttle_policy,
                },
            )

            cancelled = False
            throttle_retries = 0
            while index < total:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break

                recipient = recipients[index]
                retry_after: float | None = None
                advance = True

                try:
                    await self.send_email(
                        user_id,
                        recipient.address,
                        campaign.subject,
                        campaign.content,
                        organization_id=campaign.organization_id,
                        campaign_id=campaign_id,
                        contact_id=recipient.contact_id,
                    )
                    sent += 1
                except RateLimitExceededError as exc:
                    retry_after = exc.retry_after
                    if self.throttle_policy == "retry" and throttle_retries < self.max_throttle_retries:
                        throttle_retries += 1
                        advance = False
                        logger.info(
                            "dispatch.recipient_throttled",
                            extra={
                                "recipient": recipient.address,
                                "retry_after_s": retry_after,
                                "attempt": throttle_retries,
                            },
                        )
                    else:
                        failed += 1
                        logger.warning(
                            "dispatch.recipient_failed",
                            extra={
                                "recipient": recipient.address,
                                "error_code": exc.code,
                                "retry_after_s": retry_after,
                            },
                        )
                except SendFailureError as exc:
                    failed += 1
                    logger.error(
                        "dispatch.recipient_failed",
                        extra={
                            "recipient": recipient.address,
                            "error_code": exc.code,
                            "reason": (exc.details or {}).get("reason"),
                        },
                    )

                if advance:
                    index += 1
                    throttle_retries = 0
                    await self._save_checkpoint(
                        DispatchCheckpoint(
                            campaign_id=campaign_id,
                            cursor=index,
                            sent_count=sent,
                            failed_count=failed,
                            total_recipients=total,
                        )
                    )

                if index >= total:
                    break

                if retry_after is not None:
                    logger.info("dispatch.paused", extra={"reason": "throttled", "pause_s": retry_after})
                    if await self._pause(retry_after, cancel_event):
                        cancelled = True
                        break

                if await self._pause(self.send_pause_seconds, cancel_event):
                    cancelled = True
                    break

            result = DispatchResult(
                sent_count=sent,
                failed_count=failed,
                total_recipients=total,
                cancelled=cancelled,
            )

            if cancelled:
                logger.warning(
                    "dispatch.cancelled",
                    extra={"cursor": index, "sent_count": sent, "failed_count": failed},
                )
            else:
                logger.info(
                    "dispatch.completed",
                    extra={"sent_count": sent, "failed_count": failed, "total_recipients": total},
                )

            await self._publish_result(campaign_id, result)
            return result
        finally:
            set_campaign_id(previous_campaign_id)
