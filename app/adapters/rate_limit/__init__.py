"""Rate limit storage adapters.

Provides a small abstraction layer so the service can start with an
in-memory store and later migrate to Redis or another shared store without
changing the limiter or the API layer.
"""

from app.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitDecision, RateWindow
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore

__all__ = [
    "AbstractRateLimitStore",
    "InMemoryRateLimitStore",
    "RateLimitDecision",
    "RateWindow",
]
