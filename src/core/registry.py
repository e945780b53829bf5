"""In-memory registry of the timers this process is running.

The registry owns the canonical Timer records. Readers get copies, and every
change goes through `update`, so a scheduler task and a command handler never
share a mutable object.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from src.data.models import Timer


class TimerRegistry:
    """Thread-safe id → Timer mapping."""

    def __init__(self) -> None:
        self._timers: dict[str, Timer] = {}
        self._lock = threading.Lock()

    def add(self, timer: Timer) -> None:
        with self._lock:
            self._timers[timer.id] = replace(timer)

    def get(self, timer_id: str) -> Timer | None:
        with self._lock:
            timer = self._timers.get(timer_id)
            return replace(timer) if timer is not None else None

    def remove(self, timer_id: str) -> Timer | None:
        """Remove and return the timer, or None if someone else already did.

        Only the caller that gets the record back may tear the timer down.
        """
        with self._lock:
            return self._timers.pop(timer_id, None)

    def update(self, timer_id: str, **changes: object) -> Timer | None:
        """Apply field changes atomically. Returns the new snapshot, or None if gone."""
        with self._lock:
            timer = self._timers.get(timer_id)
            if timer is None:
                return None
            updated = replace(timer, **changes)
            self._timers[timer_id] = updated
            return replace(updated)

    def list_by_chat(self, chat_id: int) -> list[Timer]:
        with self._lock:
            timers = [replace(t) for t in self._timers.values() if t.chat_id == chat_id]
        return sorted(timers, key=lambda t: t.event_date)

    def __contains__(self, timer_id: object) -> bool:
        with self._lock:
            return timer_id in self._timers

    def __len__(self) -> int:
        with self._lock:
            return len(self._timers)
