"""In-memory rate limit store.

Notes:
- Per-process only: state is lost on restart and running multiple workers
  multiplies the effective quota.
- Thread-safe: every operation holds a lock around the shared dict.
"""

from __future__ import annotations

import threading
from typing import Iterator

from app.adapters.rate_limit.base import AbstractRateLimitStore, RateWindow


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dict-backed store for single-instance deployments."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._windows: dict[str, RateWindow] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def get(self, key: str) -> RateWindow | None:
        with self._lock:
            return self._windows.get(key)

    def set(self, key: str, window: RateWindow) -> None:
        with self._lock:
            self._windows[key] = window

    def compare_and_swap(
        self,
        key: str,
        expected: RateWindow | None,
        new: RateWindow,
    ) -> bool:
        with self._lock:
            if self._windows.get(key) != expected:
                return False
            self._windows[key] = new
            return True

    def delete(self, key: str, expected: RateWindow | None = None) -> bool:
        with self._lock:
            current = self._windows.get(key)
            if current is None:
                return False
            if expected is not None and current != expected:
                return False
            del self._windows[key]
            return True

    def items(self) -> Iterator[tuple[str, RateWindow]]:
        with self._lock:
            snapshot = list(self._windows.items())
        return iter(snapshot)
