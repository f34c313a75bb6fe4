"""In-memory campaign repository.

Notes:
- Per-process only: everything is lost on restart.
- Thread-safe: a single lock guards all tables.
"""

from __future__ import annotations

import itertools
import threading
from collections import defaultdict, deque
from datetime import timedelta
from typing import Any, Iterable

from app.adapters.storage.base import AbstractCampaignRepository
from app.adapters.storage.models import (
    Campaign,
    Contact,
    ContactList,
    DispatchCheckpoint,
    DispatchResult,
    EmailEvent,
    Recipient,
    utcnow,
)


class InMemoryCampaignRepository(AbstractCampaignRepository):
    """Dict-backed repository for development, tests and single-node demos."""

    def __init__(self, *, max_events: int = 1000) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._contacts: dict[int, Contact] = {}
        self._lists: dict[int, ContactList] = {}
        self._campaigns: dict[int, Campaign] = {}
        self._checkpoints: dict[int, DispatchCheckpoint] = {}
        self._events: deque[EmailEvent] = deque(maxlen=max_events)

    def _next_id(self) -> int:
        return next(self._ids)

    async def create_contact_list(
        self,
        organization_id: int,
        *,
        name: str,
        description: str = "",
        created_by: str | None = None,
    ) -> ContactList:
        with self._lock:
            contact_list = ContactList(
                id=self._next_id(),
                organization_id=organization_id,
                name=name,
                description=description,
                created_by=created_by,
            )
            self._lists[contact_list.id] = contact_list
            return contact_list

    async def list_contact_lists(self, organization_id: int) -> list[ContactList]:
        with self._lock:
            lists = [cl for cl in self._lists.values() if cl.organization_id == organization_id]
        return sorted(lists, key=lambda cl: cl.created_at, reverse=True)

    async def get_contact_list(self, organization_id: int, list_id: int) -> ContactList | None:
        with self._lock:
            contact_list = self._lists.get(list_id)
        if contact_list is None or contact_list.organization_id != organization_id:
            return None
        return contact_list

    def _find_contact(self, organization_id: int, email: str) -> Contact | None:
        for contact in self._contacts.values():
            if contact.organization_id == organization_id and contact.email == email:
                return contact
        return None

    async def add_contacts(
        self,
        organization_id: int,
        list_id: int,
        contacts: Iterable[dict[str, Any]],
    ) -> tuple[int, int]:
        added = skipped = 0
        with self._lock:
            contact_list = self._lists[list_id]
            for data in contacts:
                email = str(data["email"]).strip().lower()
                contact = self._find_contact(organization_id, email)
                if contact is None:
                    contact = Contact(
                        id=self._next_id(),
                        organization_id=organization_id,
                        email=email,
                        first_name=data.get("first_name") or "",
                        last_name=data.get("last_name") or "",
                        status=data.get("status") or "active",
                    )
                    self._contacts[contact.id] = contact
                else:
                    if data.get("first_name"):
                        contact.first_name = data["first_name"]
                    if data.get("last_name"):
                        contact.last_name = data["last_name"]
                if contact.id in contact_list.member_ids:
                    skipped += 1
                    continue
                contact_list.member_ids.append(contact.id)
                added += 1
        return added, skipped

    async def list_contacts(self, organization_id: int, list_id: int) -> list[Contact]:
        with self._lock:
            contact_list = self._lists.get(list_id)
            if contact_list is None or contact_list.organization_id != organization_id:
                return []
            return [self._contacts[cid] for cid in contact_list.member_ids]

    async def get_active_recipients(self, organization_id: int, list_id: int) -> list[Recipient]:
        contacts = await self.list_contacts(organization_id, list_id)
        return [
            Recipient(address=c.email, display_name=c.display_name, contact_id=c.id)
            for c in contacts
            if c.status == "active"
        ]

    async def create_campaign(
        self,
        organization_id: int,
        *,
        name: str,
        subject: str,
        content: str,
        created_by: str | None = None,
    ) -> Campaign:
        with self._lock:
            campaign = Campaign(
                id=self._next_id(),
                organization_id=organization_id,
                name=name,
                subject=subject,
                content=content,
                created_by=created_by,
            )
            self._campaigns[campaign.id] = campaign
            return campaign

    async def list_campaigns(self, organization_id: int) -> list[Campaign]:
        with self._lock:
            campaigns = [c for c in self._campaigns.values() if c.organization_id == organization_id]
        return sorted(campaigns, key=lambda c: c.created_at, reverse=True)

    async def get_campaign(
        self,
        campaign_id: int,
        organization_id: int | None = None,
    ) -> Campaign | None:
        with self._lock:
            campaign = self._campaigns.get(campaign_id)
        if campaign is None:
            return None
        if organization_id is not None and campaign.organization_id != organization_id:
            return None
        return campaign

    async def mark_campaign_sending(self, campaign_id: int, total_recipients: int) -> None:
        with self._lock:
            campaign = self._campaigns[campaign_id]
            campaign.status = "sending"
            campaign.total_recipients = total_recipients

    async def record_dispatch_result(self, campaign_id: int, result: DispatchResult) -> None:
        with self._lock:
            campaign = self._campaigns[campaign_id]
            campaign.send_count = result.sent_count
            campaign.failed_count = result.failed_count
            campaign.total_recipients = result.total_recipients
            if result.cancelled:
                campaign.status = "cancelled"
            else:
                campaign.status = "sent"
                campaign.sent_at = utcnow()

    async def save_checkpoint(self, checkpoint: DispatchCheckpoint) -> None:
        with self._lock:
            self._checkpoints[checkpoint.campaign_id] = checkpoint

    async def get_checkpoint(self, campaign_id: int) -> DispatchCheckpoint | None:
        with self._lock:
            return self._checkpoints.get(campaign_id)

    async def clear_checkpoint(self, campaign_id: int) -> None:
        with self._lock:
            self._checkpoints.pop(campaign_id, None)

    async def log_email_event(self, event: EmailEvent) -> None:
        with self._lock:
            self._events.append(event)

    async def overview(self, organization_id: int) -> dict[str, Any]:
        with self._lock:
            contacts = [c for c in self._contacts.values() if c.organization_id == organization_id]
            campaigns = [c for c in self._campaigns.values() if c.organization_id == organization_id]
            events = [e for e in self._events if e.organization_id == organization_id]

        total_sent = sum(c.send_count for c in campaigns)
        total_failed = sum(c.failed_count for c in campaigns)
        attempted = total_sent + total_failed
        delivery_rate = round(total_sent / attempted * 100, 2) if attempted else 0.0

        recent = sorted(events, key=lambda e: e.timestamp, reverse=True)[:10]

        return {
            "contacts": {
                "total": len(contacts),
                "active": sum(1 for c in contacts if c.status == "active"),
                "unsubscribed": sum(1 for c in contacts if c.status == "unsubscribed"),
                "bounced": sum(1 for c in contacts if c.status == "bounced"),
            },
            "campaigns": {
                "total": len(campaigns),
                "sent": sum(1 for c in campaigns if c.status == "sent"),
                "sending": sum(1 for c in campaigns if c.status == "sending"),
                "total_sent": total_sent,
                "total_failed": total_failed,
            },
            "delivery_rate": delivery_rate,
            "recent_activity": [
                {
                    "event_type": e.event_type,
                    "recipient": e.recipient,
                    "campaign_id": e.campaign_id,
                    "timestamp": e.timestamp,
                }
                for e in recent
            ],
        }

    async def deliverability(self, organization_id: int, *, days: int = 30) -> list[dict[str, Any]]:
        since = utcnow() - timedelta(days=days)
        with self._lock:
            events = [
                e
                for e in self._events
                if e.organization_id == organization_id and e.timestamp >= since
            ]

        rows: dict[str, dict[str, Any]] = defaultdict(
            lambda: {"sent": 0, "delivered": 0, "failed": 0, "bounced": 0}
        )
        for event in events:
            if event.event_type not in ("sent", "failed", "bounced"):
                continue
            domain = event.recipient.rpartition("@")[2].lower() or "unknown"
            row = rows[domain]
            row["sent"] += 1
            if event.event_type == "sent":
                row["delivered"] += 1
            elif event.event_type == "bounced" or not event.metadata.get("retryable", False):
                # Permanent rejections count as bounces
                row["bounced"] += 1
            else:
                row["failed"] += 1

        result = [
            {
                "domain": domain,
                **row,
                "deliverability_rate": round(row["delivered"] / row["sent"] * 100, 2),
            }
            for domain, row in rows.items()
        ]
        return sorted(result, key=lambda r: (-r["sent"], r["domain"]))
