"""Factory pattern for creating mail transport instances."""

from app.adapters.mail.base import AbstractEmailSender
from app.adapters.mail.console import ConsoleEmailSender
from app.adapters.mail.smtp import SmtpEmailSender
from app.core.config import MailSettings, settings
from app.core.errors import ValidationAppError


def create_email_sender(mail_settings: MailSettings | None = None) -> AbstractEmailSender:
    """Instantiate the mail transport selected by MAIL_PROVIDER.

    Args:
        mail_settings: Optional settings override; defaults to global settings.

    Returns:
        AbstractEmailSender: Configured transport.

    Raises:
        ValidationAppError: If the provider is unknown or misconfigured.
    """
    cfg = mail_settings or settings.mail
    provider = cfg.provider.lower()

    if provider == "console":
        return ConsoleEmailSender(from_address=cfg.from_address)

    if provider == "smtp":
        if not cfg.smtp_host:
            raise ValidationAppError(
                code="mail_missing_smtp_host",
                message="SMTP provider requires MAIL_SMTP_HOST environment variable",
            )
        return SmtpEmailSender(
            hostname=cfg.smtp_host,
            port=cfg.smtp_port,
            from_address=cfg.from_address,
            username=cfg.smtp_user,
            password=cfg.smtp_password,
            start_tls=cfg.smtp_start_tls,
            timeout_seconds=cfg.timeout_seconds,
        )

    raise ValidationAppError(
        code="mail_unknown_provider",
        message=f"Unknown mail provider: '{provider}'. Supported providers: console, smtp",
    )
