"""Storage adapters for contacts, campaigns and dispatch statistics."""

from app.adapters.storage.base import AbstractCampaignRepository
from app.adapters.storage.in_memory import InMemoryCampaignRepository

__all__ = [
    "AbstractCampaignRepository",
    "InMemoryCampaignRepository",
]
