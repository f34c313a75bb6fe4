"""Process-wide service instances shared by routes and background dispatches.

Instances are cached in-module, as the rate limiter is, so a campaign running
in the background and a later request see the same repository, transport and
quota state. ``reset_dependencies`` exists for tests.
"""

from __future__ import annotations

from app.adapters.mail.base import AbstractEmailSender
from app.adapters.mail.factory import create_email_sender
from app.adapters.storage.base import AbstractCampaignRepository
from app.adapters.storage.in_memory import InMemoryCampaignRepository
from app.core.config import settings
from app.core.rate_limit import get_rate_limiter, reset_rate_limiter
from app.services.dispatch_registry import DispatchRegistry
from app.services.email_service import EmailService

_repository: AbstractCampaignRepository | None = None
_sender: AbstractEmailSender | None = None
_registry: DispatchRegistry | None = None


def get_repository() -> AbstractCampaignRepository:
    global _repository
    if _repository is None:
        _repository = InMemoryCampaignRepository()
    return _repository


def get_email_sender() -> AbstractEmailSender:
    global _sender
    if _sender is None:
        _sender = create_email_sender()
    return _sender


def get_dispatch_registry() -> DispatchRegistry:
    global _registry
    if _registry is None:
        _registry = DispatchRegistry()
    return _registry


def get_email_service() -> EmailService:
    """Build the email service over the shared limiter, transport and storage."""

    return EmailService(
        get_rate_limiter(),
        get_email_sender(),
        get_repository(),
        send_pause_seconds=settings.app.dispatch_send_pause_seconds,
        throttle_policy=settings.app.dispatch_throttle_policy,
        max_throttle_retries=settings.app.dispatch_max_throttle_retries,
    )


def reset_dependencies() -> None:
    """Forget every cached instance, including the rate limiter state."""

    global _repository, _sender, _registry
    _repository = None
    _sender = None
    _registry = None
    reset_rate_limiter()
