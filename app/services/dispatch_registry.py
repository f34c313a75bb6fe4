"""Registry of campaign dispatches currently running in this process."""

from __future__ import annotations

import asyncio
import logging
import threading

from app.core.errors import ConflictError

logger = logging.getLogger(__name__)


class DispatchRegistry:
    """Hands out one cancel event per running campaign dispatch.

    A campaign can only be dispatched once at a time; ``cancel`` sets the
    event so the dispatcher wakes from its current pause and stops.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._running: dict[int, asyncio.Event] = {}

    def start(self, campaign_id: int) -> asyncio.Event:
        """Register a dispatch and return its cancel event.

        Raises:
            ConflictError: If the campaign is already being dispatched.
        """
        with self._lock:
            if campaign_id in self._running:
                raise ConflictError(
                    code="dispatch_already_running",
                    message="Campaign is already being sent",
                    details={"campaign_id": str(campaign_id)},
                )
            event = asyncio.Event()
            self._running[campaign_id] = event
            return event

    def cancel(self, campaign_id: int) -> bool:
        """Signal a running dispatch to stop. Returns False if none is running."""
        with self._lock:
            event = self._running.get(campaign_id)
        if event is None:
            return False
        event.set()
        logger.info("dispatch.cancel_requested", extra={"campaign_id": campaign_id})
        return True

    def finish(self, campaign_id: int) -> None:
        with self._lock:
            self._running.pop(campaign_id, None)

    def is_running(self, campaign_id: int) -> bool:
        with self._lock:
            return campaign_id in self._running
