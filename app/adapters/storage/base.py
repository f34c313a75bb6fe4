"""Campaign repository interface.

Services depend on this abstraction rather than a concrete database so the
in-memory implementation can be replaced by a relational one without
touching the dispatcher or the API layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable

from app.adapters.storage.models import (
    Campaign,
    Contact,
    ContactList,
    DispatchCheckpoint,
    DispatchResult,
    EmailEvent,
    Recipient,
)


class AbstractCampaignRepository(ABC):
    """Storage for contacts, campaigns, dispatch statistics and checkpoints."""

    # Contact lists

    @abstractmethod
    async def create_contact_list(
        self,
        organization_id: int,
        *,
        name: str,
        description: str = "",
        created_by: str | None = None,
    ) -> ContactList:
        raise NotImplementedError

    @abstractmethod
    async def list_contact_lists(self, organization_id: int) -> list[ContactList]:
        raise NotImplementedError

    @abstractmethod
    async def get_contact_list(self, organization_id: int, list_id: int) -> ContactList | None:
        raise NotImplementedError

    @abstractmethod
    async def add_contacts(
        self,
        organization_id: int,
        list_id: int,
        contacts: Iterable[dict[str, Any]],
    ) -> tuple[int, int]:
        """Add contacts to a list, creating unknown addresses.

        Returns:
            Tuple of (added, skipped) where skipped counts addresses that
            were already members of the list.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_contacts(self, organization_id: int, list_id: int) -> list[Contact]:
        raise NotImplementedError

    @abstractmethod
    async def get_active_recipients(self, organization_id: int, list_id: int) -> list[Recipient]:
        """Return the list's active contacts in membership order."""
        raise NotImplementedError

    # Campaigns

    @abstractmethod
    async def create_campaign(
        self,
        organization_id: int,
        *,
        name: str,
        subject: str,
        content: str,
        created_by: str | None = None,
    ) -> Campaign:
        raise NotImplementedError

    @abstractmethod
    async def list_campaigns(self, organization_id: int) -> list[Campaign]:
        raise NotImplementedError

    @abstractmethod
    async def get_campaign(
        self,
        campaign_id: int,
        organization_id: int | None = None,
    ) -> Campaign | None:
        """Fetch a campaign, optionally scoped to an organization."""
        raise NotImplementedError

    @abstractmethod
    async def mark_campaign_sending(self, campaign_id: int, total_recipients: int) -> None:
        raise NotImplementedError

    # Statistics sink

    @abstractmethod
    async def record_dispatch_result(self, campaign_id: int, result: DispatchResult) -> None:
        """Persist the outcome of a dispatch as campaign statistics."""
        raise NotImplementedError

    # Checkpoints

    @abstractmethod
    async def save_checkpoint(self, checkpoint: DispatchCheckpoint) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_checkpoint(self, campaign_id: int) -> DispatchCheckpoint | None:
        raise NotImplementedError

    @abstractmethod
    async def clear_checkpoint(self, campaign_id: int) -> None:
        raise NotImplementedError

    # Events / analytics

    @abstractmethod
    async def log_email_event(self, event: EmailEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    async def overview(self, organization_id: int) -> dict[str, Any]:
        """Aggregate contact, campaign and recent activity figures."""
        raise NotImplementedError

    @abstractmethod
    async def deliverability(self, organization_id: int, *, days: int = 30) -> list[dict[str, Any]]:
        """Per recipient-domain delivery counts over the last ``days`` days.

        Each row has ``domain``, ``sent`` (attempts), ``delivered``,
        ``failed`` and ``bounced``, ordered by ``sent`` descending.
        """
        raise NotImplementedError
