"""Email rate limiting wiring for the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: the store behind the limiter can be replaced (e.g. Redis).
- One limiter per process so every route and every background dispatch
  contends for the same per-user quota.

The dependency here is a pre-check (non-consuming) used by routes that send
mail, mirroring the 429 returned before any work starts. The quota itself is
charged by the send path in EmailService.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import Depends

from app.adapters.rate_limit.base import RateLimitDecision
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore
from app.core.auth import Principal, verify_api_key
from app.core.config import settings
from app.core.errors import RateLimitExceededError
from app.services.rate_limiter import EmailRateLimiter

logger = logging.getLogger(__name__)


_limiter: EmailRateLimiter | None = None
_limiter_config: tuple[int, float] | None = None


def get_rate_limiter() -> EmailRateLimiter:
    """Return the process-wide email rate limiter.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the limiter is rebuilt.
    """

    global _limiter, _limiter_config

    config = (
        settings.app.email_rate_limit_quota,
        settings.app.email_rate_limit_window_seconds,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = EmailRateLimiter(
            InMemoryRateLimitStore(),
            quota=settings.app.email_rate_limit_quota,
            window_seconds=settings.app.email_rate_limit_window_seconds,
        )
        _limiter_config = config

    return _limiter


def reset_rate_limiter() -> None:
    """Drop the cached limiter so the next call starts from empty state."""

    global _limiter, _limiter_config
    _limiter = None
    _limiter_config = None


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    """Build Retry-After and X-RateLimit-* headers for a throttled response."""

    if not settings.app.rate_limit_include_headers:
        return {}
    return {
        "Retry-After": str(decision.retry_after_seconds),
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.retry_after_seconds),
    }


async def enforce_email_rate_limit(
    principal: Annotated[Principal, Depends(verify_api_key)],
) -> RateLimitDecision:
    """FastAPI dependency rejecting users whose send window is exhausted.

    Does not consume quota.

    Raises:
        RateLimitExceededError: Rendered as 429 with Retry-After and
            X-RateLimit-* headers by the exception handlers.
    """

    decision = get_rate_limiter().check(principal.user_id)
    if decision.allowed:
        return decision

    raise RateLimitExceededError(
        code="email_rate_limit_exceeded",
        message=(
            f"Maximum {decision.limit} emails per "
            f"{settings.app.email_rate_limit_window_seconds:g} seconds allowed per user"
        ),
        details={
            "retry_after": decision.reset_in_seconds,
            "limit": decision.limit,
            "remaining": decision.remaining,
        },
    )


async def reap_stale_windows(interval_seconds: float) -> None:
    """Purge idle rate limit windows every ``interval_seconds`` until cancelled."""

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            get_rate_limiter().reap_stale()
        except Exception:
            logger.exception("rate_limit.reap_failed")
