"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    limit: int
    remaining: int
    reason: str
    retryable: bool
    recipient: str
    campaign_id: str
    list_id: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails (e.g. empty recipient list)."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundError(AppError):
    """Raised when a campaign, contact list or dispatch does not exist."""


class ConflictError(AppError):
    """Raised when an operation clashes with work already in progress."""


class RateLimitExceededError(AppError):
    """Raised when a user's email send quota for the current window is spent.

    Retryable: ``retry_after`` is the number of seconds until the window
    rolls over.
    """

    @property
    def retry_after(self) -> float:
        return float((self.details or {}).get("retry_after", 0.0))


class SendFailureError(AppError):
    """Raised when the mail transport could not deliver a message."""

    @property
    def retryable(self) -> bool:
        return bool((self.details or {}).get("retryable", False))
