"""Mail adapter layer - abstracts over outgoing mail transports."""

from app.adapters.mail.base import AbstractEmailSender, SendResult
from app.adapters.mail.console import ConsoleEmailSender
from app.adapters.mail.factory import create_email_sender
from app.adapters.mail.smtp import SmtpEmailSender

__all__ = [
    "AbstractEmailSender",
    "ConsoleEmailSender",
    "SendResult",
    "SmtpEmailSender",
    "create_email_sender",
]
