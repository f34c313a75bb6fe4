"""Pydantic schemas for the dashboard overview and deliverability endpoints."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ContactTotals(BaseModel):
    total: int
    active: int
    unsubscribed: int
    bounced: int


class CampaignTotals(BaseModel):
    total: int
    sent: int
    sending: int
    total_sent: int = Field(..., description="Emails accepted across all campaigns.")
    total_failed: int = Field(..., description="Emails that failed across all campaigns.")


class ActivityItem(BaseModel):
    event_type: str
    recipient: str
    campaign_id: int | None = None
    timestamp: datetime


class DashboardOverview(BaseModel):
    contacts: ContactTotals
    campaigns: CampaignTotals
    delivery_rate: float = Field(..., description="Percentage of attempted emails that were accepted.")
    recent_activity: List[ActivityItem] = Field(default_factory=list)


class DomainMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    domain: str
    sent: int = Field(..., description="Delivery attempts to the domain.")
    delivered: int
    failed: int = Field(..., description="Transient failures (connection loss, 4xx replies).")
    bounced: int = Field(..., description="Permanent rejections.")
    deliverability_rate: float = Field(..., alias="deliverabilityRate")


class DeliverabilityResponse(BaseModel):
    """Sender health over a trailing window of days."""

    model_config = ConfigDict(populate_by_name=True)

    days: int
    health_score: int = Field(..., alias="healthScore")
    deliverability_score: float = Field(..., alias="deliverabilityScore")
    bounce_rate: float = Field(..., alias="bounceRate")
    domain_metrics: List[DomainMetrics] = Field(
        default_factory=list,
        alias="domainMetrics",
    )
