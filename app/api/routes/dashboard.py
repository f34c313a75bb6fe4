from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.adapters.storage.base import AbstractCampaignRepository
from app.api.dependencies import get_repository
from app.core.auth import PERMISSION_VIEW_ANALYTICS, PERMISSION_VIEW_DASHBOARD, Principal, require_permission
from app.schemas.dashboard import DashboardOverview, DeliverabilityResponse
from app.services.deliverability import summarize_deliverability

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

Repository = Annotated[AbstractCampaignRepository, Depends(get_repository)]


@router.get("/overview", response_model=DashboardOverview)
async def get_overview(
    principal: Annotated[Principal, Depends(require_permission(PERMISSION_VIEW_DASHBOARD))],
    repository: Repository,
) -> DashboardOverview:
    """Contact and campaign totals plus the ten most recent email events."""

    return DashboardOverview.model_validate(await repository.overview(principal.organization_id))


@router.get("/deliverability", response_model=DeliverabilityResponse)
async def get_deliverability(
    principal: Annotated[Principal, Depends(require_permission(PERMISSION_VIEW_ANALYTICS))],
    repository: Repository,
    days: Annotated[int, Query(ge=1, le=365, description="Trailing window in days.")] = 30,
) -> DeliverabilityResponse:
    """Health score, delivery and bounce rates, broken down by recipient domain."""

    domain_metrics = await repository.deliverability(principal.organization_id, days=days)
    summary = summarize_deliverability(domain_metrics)
    logger.info(
        "dashboard.deliverability",
        extra={
            "organization_id": principal.organization_id,
            "days": days,
            "domains": len(domain_metrics),
            "health_score": summary["health_score"],
        },
    )
    return DeliverabilityResponse(days=days, **summary)
