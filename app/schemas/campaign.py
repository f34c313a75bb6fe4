"""Pydantic schemas for campaign, send and rate status endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CampaignCreate(BaseModel):
    """Payload for creating a campaign."""

    name: str = Field(..., min_length=1, max_length=200, description="Internal campaign name.")
    subject: str = Field(..., min_length=1, max_length=998, description="Email subject line.")
    content: str = Field(..., min_length=1, description="HTML body sent to every recipient.")


class CampaignResponse(BaseModel):
    """Campaign with its latest dispatch statistics."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    subject: str
    status: Literal["draft", "sending", "sent", "cancelled"]
    send_count: int = Field(..., description="Recipients accepted by the transport in the last dispatch.")
    failed_count: int = Field(..., description="Recipients that failed in the last dispatch.")
    total_recipients: int
    created_by: str | None = None
    created_at: datetime
    sent_at: datetime | None = None
    dispatch_running: bool = Field(
        default=False,
        description="True while a dispatch for this campaign is in progress.",
    )


class CampaignCreatedResponse(BaseModel):
    id: int
    message: str = "Campaign created successfully"


class SendCampaignRequest(BaseModel):
    """Payload for dispatching a campaign to a contact list."""

    list_id: int = Field(..., description="Contact list whose active contacts receive the campaign.")
    resume: bool = Field(
        default=False,
        description="Continue an interrupted dispatch from its last checkpoint.",
    )


class SendCampaignResponse(BaseModel):
    message: str = "Campaign sending started"
    campaign_id: int
    total_recipients: int


class CancelDispatchResponse(BaseModel):
    message: str = "Cancellation requested"
    campaign_id: int


class RateStatusResponse(BaseModel):
    """Current email send window of the authenticated user."""

    allowed: bool
    limit: int = Field(..., description="Maximum emails per window.")
    remaining: int = Field(..., description="Emails still permitted in the current window.")
    reset_in_seconds: int = Field(..., description="Seconds until the window rolls over.")


class TestEmailRequest(BaseModel):
    to: EmailStr
    subject: str = Field(..., min_length=1, max_length=998)
    content: str = Field(..., min_length=1)


class TestEmailResponse(BaseModel):
    message: str = "Test email sent successfully"
    message_id: str | None = None
    remaining: int = Field(..., description="Emails still permitted in the current window.")
