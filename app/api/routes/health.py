from __future__ import annotations

from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check used by load balancers and monitoring.

    Also reports the active mail transport and email quota so operators can
    confirm a deployment picked up its configuration.
    """

    return {
        "status": "ok",
        "mail_provider": settings.mail.provider,
        "email_rate_limit": {
            "quota": settings.app.email_rate_limit_quota,
            "window_seconds": settings.app.email_rate_limit_window_seconds,
        },
    }
