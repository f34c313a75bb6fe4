"""Per-user email send rate limiter.

Fixed-window limiter: each user gets ``quota`` sends per window. A window
opens lazily on the first check for a user and is reset wholesale (count back
to zero, start moved to now) once ``window_seconds`` have elapsed since it
opened. It is not a true sliding window.

All state lives behind an AbstractRateLimitStore. Every mutation goes through
``compare_and_swap`` so concurrent dispatches for the same user contend for
the same quota without overselling it.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitDecision, RateWindow

logger = logging.getLogger(__name__)

UserId = str | int


class EmailRateLimiter:
    """Decides whether a user may send another email right now.

    Attributes:
        quota: Maximum admitted sends per user per window.
        window_seconds: Window length in seconds.
    """

    def __init__(
        self,
        store: AbstractRateLimitStore,
        *,
        quota: int = 2,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Backing store for per-user windows.
            quota: Maximum number of sends per window.
            window_seconds: Window length in seconds.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If quota or window_seconds are invalid.
        """
        if quota < 1:
            raise ValueError("quota must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.quota = quota
        self.window_seconds = window_seconds
        self._store = store
        self._clock = clock

    @staticmethod
    def _key(user_id: UserId) -> str:
        user = str(user_id).strip()
        if not user:
            raise ValueError("user_id must be a non-empty value")
        return f"user:{user}"

    def _is_expired(self, window: RateWindow, now: float) -> bool:
        return now - window.window_start >= self.window_seconds

    def _decision(self, window: RateWindow, now: float) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=window.count < self.quota,
            limit=self.quota,
            remaining=max(0, self.quota - window.count),
            reset_in_seconds=max(0.0, self.window_seconds - (now - window.window_start)),
        )

    def check(self, user_id: UserId) -> RateLimitDecision:
        """Report whether the user may send now without consuming quota.

        Creates the user's window on first use and resets it when expired.
        Repeated calls with no ``increment`` in between return the same
        ``allowed``/``remaining``.
        """
        key = self._key(user_id)
        while True:
            now = self._clock()
            current = self._store.get(key)
            if current is not None and not self._is_expired(current, now):
                window = current
                break
            window = RateWindow(count=0, window_start=now)
            if self._store.compare_and_swap(key, current, window):
                break

        decision = self._decision(window, now)
        if not decision.allowed:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "user_id": str(user_id),
                    "limit": self.quota,
                    "reset_in_s": round(decision.reset_in_seconds, 3),
                },
            )
        return decision

    def increment(self, user_id: UserId) -> None:
        """Record one send against the user's current window.

        No-op when the user has no window yet; callers are expected to have
        called ``check`` first.
        """
        key = self._key(user_id)
        while True:
            current = self._store.get(key)
            if current is None:
                return
            updated = RateWindow(count=current.count + 1, window_start=current.window_start)
            if self._store.compare_and_swap(key, current, updated):
                break

        logger.info(
            "rate_limit.send_recorded",
            extra={
                "user_id": str(user_id),
                "count": updated.count,
                "limit": self.quota,
            },
        )

    def acquire(self, user_id: UserId) -> RateLimitDecision:
        """Atomically check and, if admitted, record one send.

        This is the check-then-increment pair the send path uses. Two callers
        racing for the last slot of a window cannot both be admitted.

        Returns:
            The decision. When allowed, ``remaining`` already accounts for the
            send just reserved; when not, the count is left untouched.
        """
        key = self._key(user_id)
        while True:
            now = self._clock()
            current = self._store.get(key)
            if current is None or self._is_expired(current, now):
                base = RateWindow(count=0, window_start=now)
            else:
                base = current

            if base.count >= self.quota:
                # base is always the live window here: a fresh one has count 0
                decision = self._decision(base, now)
                logger.warning(
                    "rate_limit.exceeded",
                    extra={
                        "user_id": str(user_id),
                        "limit": self.quota,
                        "reset_in_s": round(decision.reset_in_seconds, 3),
                    },
                )
                return decision

            reserved = RateWindow(count=base.count + 1, window_start=base.window_start)
            if self._store.compare_and_swap(key, current, reserved):
                break

        logger.info(
            "rate_limit.send_recorded",
            extra={
                "user_id": str(user_id),
                "count": reserved.count,
                "limit": self.quota,
            },
        )
        return RateLimitDecision(
            allowed=True,
            limit=self.quota,
            remaining=max(0, self.quota - reserved.count),
            reset_in_seconds=max(0.0, self.window_seconds - (now - reserved.window_start)),
        )

    def status(self, user_id: UserId) -> RateLimitDecision:
        """Read-only snapshot for UI/API introspection.

        Never creates or resets a window. A user who has never sent (or whose
        window expired) sees the full quota.
        """
        key = self._key(user_id)
        now = self._clock()
        current = self._store.get(key)
        if current is None or self._is_expired(current, now):
            return RateLimitDecision(
                allowed=True,
                limit=self.quota,
                remaining=self.quota,
                reset_in_seconds=self.window_seconds,
            )
        return self._decision(current, now)

    def reap_stale(self) -> int:
        """Delete windows idle for at least two window lengths.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        idle_after = 2 * self.window_seconds
        removed = 0
        for key, window in self._store.items():
            if now - window.window_start < idle_after:
                continue
            # Only delete if nobody reset the window since the snapshot
            if self._store.delete(key, expected=window):
                removed += 1

        if removed:
            logger.info(
                "rate_limit.reaped",
                extra={"removed": removed},
            )
        return removed
