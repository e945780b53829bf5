"""
Countdown Bot — Data Models.

Timers persist in SQLite so a restart resumes every running countdown.
The in-memory copy lives in TimerRegistry; both are kept in sync by the
scheduler on every tick.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


def new_timer_id() -> str:
    """Return a fresh collision-resistant timer identifier."""
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Timer:
    """A countdown to a fixed instant, shown as a pinned message in one chat."""

    id: str
    event_date: datetime               # timezone-aware instant
    chat_id: int
    timezone: str = "UTC"              # IANA zone used for rendering
    pinned_message_id: int | None = None
    is_running: bool = True
    created_at: datetime = field(default_factory=_utcnow)

    def remaining(self, now: datetime) -> float:
        """Seconds left until event_date (negative once it has passed)."""
        return (self.event_date - now).total_seconds()

    def is_stale(self, now: datetime) -> bool:
        """True if the scheduler should tear this timer down."""
        return not self.is_running or self.event_date <= now
