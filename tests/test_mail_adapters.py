"""Tests for mail transports and the transport factory."""

from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest

from app.adapters.mail.console import ConsoleEmailSender
from app.adapters.mail.factory import create_email_sender
from app.adapters.mail.smtp import SmtpEmailSender
from app.core.config import MailSettings
from app.core.errors import ValidationAppError


def _smtp_sender(port: int = 587) -> SmtpEmailSender:
    return SmtpEmailSender(
        hostname="smtp.example.com",
        port=port,
        from_address="news@example.com",
        username="mailer",
        password="s3cret",
    )


class TestConsoleSender:
    @pytest.mark.asyncio
    async def test_accepts_and_records_message(self) -> None:
        sender = ConsoleEmailSender(from_address="news@example.com")

        result = await sender.send("to@example.com", "Hello", "<p>Hi</p>")

        assert result.success is True
        assert result.message_id.startswith("console-")
        assert sender.outbox == [("to@example.com", "Hello")]


class TestSmtpSender:
    @pytest.mark.asyncio
    async def test_successful_send_returns_message_id(self) -> None:
        with patch("app.adapters.mail.smtp.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            result = await _smtp_sender().send("to@example.com", "Hello", "<p>Hi</p>")

        assert result.success is True
        assert result.message_id
        message = mock_send.await_args.args[0]
        assert message["To"] == "to@example.com"
        assert message["From"] == "news@example.com"
        assert message["Subject"] == "Hello"
        kwargs = mock_send.await_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["start_tls"] is True
        assert kwargs["use_tls"] is False

    @pytest.mark.asyncio
    async def test_port_465_uses_implicit_tls(self) -> None:
        with patch("app.adapters.mail.smtp.aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            await _smtp_sender(port=465).send("to@example.com", "Hello", "<p>Hi</p>")

        kwargs = mock_send.await_args.kwargs
        assert kwargs["use_tls"] is True
        assert kwargs["start_tls"] is False

    @pytest.mark.asyncio
    async def test_4xx_reply_is_retryable_failure(self) -> None:
        error = aiosmtplib.SMTPResponseException(451, "Try again later")
        with patch("app.adapters.mail.smtp.aiosmtplib.send", new=AsyncMock(side_effect=error)):
            result = await _smtp_sender().send("to@example.com", "Hello", "x")

        assert result.success is False
        assert result.retryable is True
        assert result.reason.startswith("451")

    @pytest.mark.asyncio
    async def test_5xx_reply_is_terminal_failure(self) -> None:
        error = aiosmtplib.SMTPResponseException(554, "Transaction failed")
        with patch("app.adapters.mail.smtp.aiosmtplib.send", new=AsyncMock(side_effect=error)):
            result = await _smtp_sender().send("to@example.com", "Hello", "x")

        assert result.success is False
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_connection_error_is_retryable_failure(self) -> None:
        error = aiosmtplib.SMTPConnectError("Connection refused")
        with patch("app.adapters.mail.smtp.aiosmtplib.send", new=AsyncMock(side_effect=error)):
            result = await _smtp_sender().send("to@example.com", "Hello", "x")

        assert result.success is False
        assert result.retryable is True

    @pytest.mark.asyncio
    async def test_refused_recipient_is_terminal_failure(self) -> None:
        error = aiosmtplib.SMTPRecipientsRefused([])
        with patch("app.adapters.mail.smtp.aiosmtplib.send", new=AsyncMock(side_effect=error)):
            result = await _smtp_sender().send("to@example.com", "Hello", "x")

        assert result.success is False
        assert result.retryable is False
        assert result.reason.startswith("recipient refused")


class TestFactory:
    def test_console_provider(self) -> None:
        sender = create_email_sender(MailSettings(provider="console", from_address="a@example.com"))

        assert isinstance(sender, ConsoleEmailSender)
        assert sender.from_address == "a@example.com"

    def test_smtp_provider(self) -> None:
        sender = create_email_sender(
            MailSettings(provider="smtp", smtp_host="smtp.example.com", smtp_port=2525)
        )

        assert isinstance(sender, SmtpEmailSender)
        assert sender.port == 2525

    def test_smtp_without_host_is_rejected(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_email_sender(MailSettings(provider="smtp", smtp_host=""))

        assert exc_info.value.code == "mail_missing_smtp_host"

    def test_unknown_provider_is_rejected(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_email_sender(MailSettings(provider="carrier-pigeon"))

        assert exc_info.value.code == "mail_unknown_provider"
