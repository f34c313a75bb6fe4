"""Console mail transport: logs messages instead of delivering them."""

from __future__ import annotations

import logging
import uuid

from app.adapters.mail.base import AbstractEmailSender, SendResult

logger = logging.getLogger(__name__)


class ConsoleEmailSender(AbstractEmailSender):
    """Accepts every message and records it in the log.

    Used for local development and tests. The list of sent messages is kept
    so callers can inspect what would have been delivered.
    """

    def __init__(self, from_address: str = "no-reply@localhost") -> None:
        self.from_address = from_address
        self.outbox: list[tuple[str, str]] = []

    async def send(
        self,
        recipient_address: str,
        subject: str,
        content: str,
    ) -> SendResult:
        message_id = f"console-{uuid.uuid4().hex}"
        self.outbox.append((recipient_address, subject))
        logger.info(
            "mail.console_send",
            extra={
                "from_address": self.from_address,
                "recipient": recipient_address,
                "subject": subject,
                "content": content,
                "message_id": message_id,
            },
        )
        return SendResult.ok(message_id)
