"""API key authentication and permission checks.

Keys are configured through ``APP_API_KEYS`` as comma-separated entries of
the form ``key:user_id[:organization_id[:perm1|perm2]]``. A verified key
resolves to a Principal: the user identity the send quota is charged to, the
organization whose data the user sees, and the permissions they hold.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Header, HTTPException, status

from app.core.config import settings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

PERMISSION_SEND_CAMPAIGNS = "send_campaigns"
PERMISSION_MANAGE_CONTACTS = "manage_contacts"
PERMISSION_VIEW_DASHBOARD = "view_dashboard"
PERMISSION_VIEW_ANALYTICS = "view_analytics"

ALL_PERMISSIONS: frozenset[str] = frozenset(
    {
        PERMISSION_SEND_CAMPAIGNS,
        PERMISSION_MANAGE_CONTACTS,
        PERMISSION_VIEW_DASHBOARD,
        PERMISSION_VIEW_ANALYTICS,
    }
)

DEFAULT_ORGANIZATION_ID = 1


@dataclass(frozen=True)
class Principal:
    """Verified identity attached to a request."""

    user_id: str
    organization_id: int
    permissions: frozenset[str]

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions


def _hash_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()[:16]


def parse_api_keys(keys_string: str | None) -> dict[str, Principal]:
    """Parse configured API key entries into a key -> Principal mapping.

    Args:
        keys_string: Comma-separated entries, or None.

    Returns:
        Mapping of API key to the principal it authenticates.

    Raises:
        ValueError: If an entry is malformed.

    Examples:
        >>> parse_api_keys("k1:alice")["k1"].user_id
        'alice'
        >>> parse_api_keys("k1:alice:7:send_campaigns")["k1"].organization_id
        7
        >>> parse_api_keys(None)
        {}
    """
    if not keys_string:
        return {}

    principals: dict[str, Principal] = {}
    for raw_entry in keys_string.split(","):
        entry = raw_entry.strip()
        if not entry:
            continue

        parts = [p.strip() for p in entry.split(":")]
        if len(parts) < 2 or not parts[0] or not parts[1] or len(parts) > 4:
            raise ValueError("API key entries must look like key:user_id[:organization_id[:permissions]]")

        api_key, user_id = parts[0], parts[1]
        organization_id = int(parts[2]) if len(parts) > 2 and parts[2] else DEFAULT_ORGANIZATION_ID
        if len(parts) > 3 and parts[3]:
            permissions = frozenset(p.strip() for p in parts[3].split("|") if p.strip())
        else:
            permissions = ALL_PERMISSIONS

        principals[api_key] = Principal(
            user_id=user_id,
            organization_id=organization_id,
            permissions=permissions,
        )
    return principals


def anonymous_principal() -> Principal:
    """Principal used for every request when authentication is disabled."""
    return Principal(
        user_id=settings.app.anonymous_user_id,
        organization_id=DEFAULT_ORGANIZATION_ID,
        permissions=ALL_PERMISSIONS,
    )


def validate_api_key(provided_key: str) -> Principal:
    """Resolve an API key to its principal.

    Pure validation logic without FastAPI dependencies for easy testing.

    Raises:
        AuthenticationAppError: If the key is unknown or no keys are configured.
    """
    if not settings.app.api_key_required:
        return anonymous_principal()

    try:
        principals = parse_api_keys(settings.app.api_keys)
    except ValueError as exc:
        logger.error(
            "api_key_validation_failed",
            extra={"reason": "api_keys_malformed", "error_msg": str(exc)},
        )
        raise AuthenticationAppError(
            code="api_keys_malformed",
            message="API key configuration is invalid",
            details={"hint": "Entries must look like key:user_id[:organization_id[:perm1|perm2]]"},
        ) from exc

    if not principals:
        logger.error(
            "api_key_validation_failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    principal = principals.get(provided_key)
    if principal is None:
        logger.warning(
            "api_key_validation_failed",
            extra={"reason": "invalid_api_key", "api_key_hash": _hash_key(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )
    return principal


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> Principal:
    """FastAPI dependency authenticating the X-API-Key header.

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    if not settings.app.api_key_required:
        return anonymous_principal()

    if not x_api_key:
        logger.warning("auth.missing_key", extra={"api_key_present": False})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing API key. Provide X-API-Key header.",
        )

    try:
        principal = validate_api_key(x_api_key)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc

    logger.debug(
        "auth.success",
        extra={"user_id": principal.user_id, "api_key_hash": _hash_key(x_api_key)},
    )
    return principal


def require_permission(permission: str) -> Callable[..., Awaitable[Principal]]:
    """Build a dependency that authenticates and checks one permission.

    Usage:
        @router.post("/campaigns")
        async def create(principal: Principal = Depends(require_permission("send_campaigns"))):
            ...
    """

    async def _dependency(
        principal: Annotated[Principal, Depends(verify_api_key)],
    ) -> Principal:
        if not principal.has_permission(permission):
            logger.warning(
                "auth.permission_denied",
                extra={"user_id": principal.user_id, "permission": permission},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied",
            )
        return principal

    return _dependency
