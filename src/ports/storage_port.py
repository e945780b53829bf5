"""Storage port — abstract interface for durable timer persistence.

The scheduler and recovery procedure depend on this protocol; TimerDB is the
SQLite implementation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.data.models import Timer


class StorageError(Exception):
    """Raised when any storage operation fails (distinct from "not found")."""


class TimerStore(Protocol):
    """Abstract timer persistence used by core modules."""

    def create(self, timer: Timer) -> Timer: ...

    def get(self, timer_id: str) -> Timer | None: ...

    def update(
        self, timer_id: str, pinned_message_id: int | None, is_running: bool,
    ) -> bool: ...

    def delete(self, timer_id: str) -> bool: ...

    def list_running(self) -> list[Timer]: ...

    def list_by_chat(self, chat_id: int) -> list[Timer]: ...
