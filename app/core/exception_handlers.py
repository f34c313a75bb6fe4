"""Global exception handlers for consistent error responses.

Every domain error is rendered as ``{"error": {code, message, request_id,
details}}`` with an HTTP status derived from its type. Unexpected exceptions
become a generic 500 without leaking internals.

Design:
- ValidationAppError → 400
- AuthenticationAppError → 403
- NotFoundError → 404
- ConflictError → 409
- RateLimitExceededError → 429 (+ Retry-After)
- SendFailureError → 502
- Unexpected Exception → 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.adapters.rate_limit.base import RateLimitDecision
from app.core.errors import (
    AppError,
    AuthenticationAppError,
    ConflictError,
    NotFoundError,
    RateLimitExceededError,
    SendFailureError,
)
from app.core.logging import get_request_id
from app.core.rate_limit import rate_limit_headers

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (RateLimitExceededError, 429),
    (SendFailureError, 502),
)


def status_for_error(exc: AppError) -> int:
    """Map a domain error to its HTTP status (400 when no rule matches)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_for_error(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceededError):
        details = exc.details or {}
        headers = rate_limit_headers(
            RateLimitDecision(
                allowed=False,
                limit=int(details.get("limit", 0)),
                remaining=int(details.get("remaining", 0)),
                reset_in_seconds=max(0.0, exc.retry_after),
            )
        )

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message; no stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
