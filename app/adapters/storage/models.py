"""Records exchanged with the campaign repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

ContactStatus = Literal["active", "unsubscribed", "bounced"]
CampaignStatus = Literal["draft", "sending", "sent", "cancelled"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Recipient:
    """One entry of a campaign's ordered recipient list."""

    address: str
    display_name: str = ""
    contact_id: int | None = None


@dataclass
class Contact:
    id: int
    organization_id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    status: ContactStatus = "active"
    created_at: datetime = field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class ContactList:
    id: int
    organization_id: int
    name: str
    description: str = ""
    created_by: str | None = None
    member_ids: list[int] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Campaign:
    id: int
    organization_id: int
    name: str
    subject: str
    content: str
    created_by: str | None = None
    status: CampaignStatus = "draft"
    send_count: int = 0
    failed_count: int = 0
    total_recipients: int = 0
    created_at: datetime = field(default_factory=utcnow)
    sent_at: datetime | None = None


@dataclass(frozen=True)
class DispatchResult:
    """Counts produced by one campaign dispatch.

    Attributes:
        sent_count: Recipients the transport accepted.
        failed_count: Recipients that failed (throttled or transport error).
        total_recipients: Size of the recipient list.
        cancelled: True if an operator stopped the dispatch early.
    """

    sent_count: int
    failed_count: int
    total_recipients: int
    cancelled: bool = False

    @property
    def processed(self) -> int:
        return self.sent_count + self.failed_count


@dataclass(frozen=True)
class DispatchCheckpoint:
    """Resume point of a partially processed dispatch.

    ``cursor`` is the index of the next recipient to process.
    """

    campaign_id: int
    cursor: int
    sent_count: int
    failed_count: int
    total_recipients: int
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class EmailEvent:
    organization_id: int
    recipient: str
    event_type: str
    campaign_id: int | None = None
    contact_id: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)
