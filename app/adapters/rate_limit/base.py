"""Rate limit state and storage interfaces.

The limiter depends on this abstraction (not a concrete store) so the
single-process in-memory store can be swapped for a shared one (e.g. Redis)
when the API runs as several instances.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class RateWindow:
    """Sends recorded for one user in the current fixed window.

    Attributes:
        count: Sends recorded since ``window_start``.
        window_start: UNIX time in seconds when the window opened.
    """

    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check. Never persisted.

    Attributes:
        allowed: Whether another send is admitted right now.
        limit: Quota per window.
        remaining: Sends still permitted in the current window.
        reset_in_seconds: Time until the current window rolls over.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_in_seconds: float

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds a throttled caller should wait (HTTP Retry-After)."""
        return max(0, int(math.ceil(self.reset_in_seconds)))


class AbstractRateLimitStore(ABC):
    """Key/value capability holding one RateWindow per user key.

    ``compare_and_swap`` is the only primitive the limiter relies on for
    atomicity, which is what a networked store has to provide as well.
    """

    @abstractmethod
    def get(self, key: str) -> RateWindow | None:
        """Return the window stored under key, or None."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, window: RateWindow) -> None:
        """Unconditionally store a window under key."""
        raise NotImplementedError

    @abstractmethod
    def compare_and_swap(
        self,
        key: str,
        expected: RateWindow | None,
        new: RateWindow,
    ) -> bool:
        """Store ``new`` only if the current value equals ``expected``.

        Args:
            key: Store key.
            expected: Value the caller last read (None if absent).
            new: Replacement value.

        Returns:
            True if the swap happened, False if another writer got there first.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str, expected: RateWindow | None = None) -> bool:
        """Remove key, optionally only while it still equals ``expected``."""
        raise NotImplementedError

    @abstractmethod
    def items(self) -> Iterator[tuple[str, RateWindow]]:
        """Iterate over a snapshot of all stored windows."""
        raise NotImplementedError
