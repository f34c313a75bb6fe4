from __future__ import annotations

from app.api.routes.campaigns import router as campaigns_router
from app.api.routes.contacts import router as contacts_router
from app.api.routes.dashboard import router as dashboard_router
from app.api.routes.health import router as health_router

__all__ = ["campaigns_router", "contacts_router", "dashboard_router", "health_router"]
