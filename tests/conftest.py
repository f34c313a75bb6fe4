"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any app import so the settings object
is built with test values (no .env file, no real pauses, console transport).
"""

import os

import pytest

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault(
    "APP_API_KEYS",
    "test-api-key-123:alice:1,"
    "test-api-key-456:bob:1:view_dashboard,"
    "test-api-key-789:carol:2",
)
os.environ.setdefault("APP_DISPATCH_SEND_PAUSE_SECONDS", "0")
os.environ.setdefault("APP_EMAIL_RATE_LIMIT_REAP_INTERVAL_SECONDS", "0")
os.environ.setdefault("MAIL_PROVIDER", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")


class FakeClock:
    """Deterministic clock used to drive window expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingPause:
    """Pause stand-in that records durations and advances a FakeClock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float, cancel_event=None) -> bool:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)
        return cancel_event is not None and cancel_event.is_set()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_pause(fake_clock: FakeClock) -> RecordingPause:
    return RecordingPause(fake_clock)


@pytest.fixture(autouse=True)
def _fresh_dependencies():
    """Start every test with empty storage, transport outbox and quota state."""
    from app.api.dependencies import reset_dependencies

    reset_dependencies()
    yield
    reset_dependencies()
