"""SMTP mail transport adapter."""

from __future__ import annotations

import logging
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

import aiosmtplib

from app.adapters.mail.base import AbstractEmailSender, SendResult

logger = logging.getLogger(__name__)


class SmtpEmailSender(AbstractEmailSender):
    """Deliver messages through an SMTP relay using aiosmtplib.

    One connection per message; campaign pacing keeps the send rate far below
    the point where connection reuse would matter.
    """

    def __init__(
        self,
        *,
        hostname: str,
        port: int,
        from_address: str,
        username: str | None = None,
        password: str | None = None,
        start_tls: bool = True,
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialize the SMTP sender.

        Args:
            hostname: SMTP relay host.
            port: SMTP relay port (465 uses implicit TLS).
            from_address: From header and envelope sender.
            username: Optional login user.
            password: Optional login password.
            start_tls: Upgrade plain connections with STARTTLS.
            timeout_seconds: Connection and command timeout.
        """
        self.hostname = hostname
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.start_tls = start_tls
        self.timeout_seconds = timeout_seconds

    def _build_message(self, recipient_address: str, subject: str, content: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.from_address
        message["To"] = recipient_address
        message["Subject"] = subject
        message["Date"] = formatdate(localtime=False)
        message["Message-ID"] = make_msgid()
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(content, subtype="html")
        return message

    async def send(
        self,
        recipient_address: str,
        subject: str,
        content: str,
    ) -> SendResult:
        """Send one message over SMTP.

        Returns:
            SendResult: 4xx replies and connection problems are reported as
            retryable failures, 5xx replies as terminal ones.
        """
        message = self._build_message(recipient_address, subject, content)
        use_tls = self.port == 465

        try:
            await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=use_tls,
                start_tls=self.start_tls and not use_tls,
                timeout=self.timeout_seconds,
            )
        except aiosmtplib.SMTPRecipientsRefused as exc:
            logger.warning(
                "mail.smtp_recipient_refused",
                extra={"recipient": recipient_address, "error_msg": str(exc)},
            )
            return SendResult.failed(f"recipient refused: {exc}")
        except aiosmtplib.SMTPResponseException as exc:
            retryable = 400 <= exc.code < 500
            logger.warning(
                "mail.smtp_rejected",
                extra={
                    "recipient": recipient_address,
                    "smtp_code": exc.code,
                    "retryable": retryable,
                },
            )
            return SendResult.failed(f"{exc.code} {exc.message}", retryable=retryable)
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.warning(
                "mail.smtp_transport_error",
                extra={
                    "recipient": recipient_address,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return SendResult.failed(str(exc) or type(exc).__name__, retryable=True)

        return SendResult.ok(str(message["Message-ID"]))
