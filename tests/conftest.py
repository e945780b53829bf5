"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp DB, a fake clock and a mock
message publisher.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("LOCALE", "en")
os.environ.setdefault("ALLOWED_USER_IDS", "")

import itertools
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_timers.db")


@pytest.fixture
def timer_db(tmp_db_path):
    """Return a TimerDB instance backed by a temp file."""
    from src.data.db import TimerDB
    return TimerDB(db_path=tmp_db_path)


@pytest.fixture
def publisher():
    """Mock MessagePublisher + PermissionChecker; send() returns 100, 101, ..."""
    counter = itertools.count(100)
    pub = AsyncMock()
    pub.send = AsyncMock(side_effect=lambda chat_id, text: next(counter))
    pub.has_pin_authority = AsyncMock(return_value=True)
    return pub


@pytest.fixture
def registry():
    from src.core.registry import TimerRegistry
    return TimerRegistry()


@pytest.fixture
def scheduler(registry, timer_db, publisher, clock):
    from src.core.scheduler import TimerScheduler
    return TimerScheduler(
        registry, timer_db, publisher, tick_seconds=0.01, locale="en", clock=clock,
    )
