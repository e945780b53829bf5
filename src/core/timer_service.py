"""
Countdown Bot — Timer Service.

Command-side operations on timers: create, list, delete. Wires the
permission guard, store, registry and scheduler together so the Telegram
handlers stay thin.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from src.core.errors import PermissionDeniedError
from src.data.models import Timer, new_timer_id

if TYPE_CHECKING:
    from src.core.permission_guard import PermissionGuard
    from src.core.registry import TimerRegistry
    from src.core.scheduler import TimerScheduler
    from src.ports.storage_port import TimerStore

logger = logging.getLogger(__name__)


class TimerService:
    """Creates, lists and deletes timers for the command handlers."""

    def __init__(
        self,
        store: TimerStore,
        registry: TimerRegistry,
        scheduler: TimerScheduler,
        guard: PermissionGuard,
        timezone: str = "UTC",
    ) -> None:
        self.store = store
        self.registry = registry
        self.scheduler = scheduler
        self.guard = guard
        self.timezone = timezone

    async def create_timer(self, chat_id: int, event_date: datetime) -> Timer:
        """Persist a new timer and start its update loop.

        The pin-authority check runs before anything is written; a denial
        raises PermissionDeniedError and leaves no trace.
        A StorageError from the insert propagates with nothing registered.
        """
        allowed, reason = await self.guard.can_create(chat_id)
        if not allowed:
            raise PermissionDeniedError(chat_id, reason)

        timer = Timer(
            id=new_timer_id(),
            event_date=event_date,
            chat_id=chat_id,
            timezone=self.timezone,
        )
        self.store.create(timer)
        self.registry.add(timer)
        self.scheduler.spawn(timer.id)
        return timer

    def list_timers(self, chat_id: int) -> list[Timer]:
        """Active timers of a chat, soonest first."""
        return self.registry.list_by_chat(chat_id)

    def get_timer(self, chat_id: int, timer_id: str) -> Timer | None:
        """Look up a timer, but only from the chat it belongs to."""
        timer = self.registry.get(timer_id)
        if timer is None or timer.chat_id != chat_id:
            return None
        return timer

    def find_timer(self, chat_id: int, prefix: str) -> Timer | None:
        """Resolve a full id or an unambiguous id prefix within a chat."""
        prefix = prefix.strip().lower()
        if not prefix:
            return None
        matches = [t for t in self.list_timers(chat_id) if t.id.startswith(prefix)]
        return matches[0] if len(matches) == 1 else None

    async def delete_timer(self, chat_id: int, timer_id: str) -> bool:
        """Delete a timer of this chat. Returns False if there is no such timer."""
        if self.get_timer(chat_id, timer_id) is None:
            logger.info("Delete of timer %s refused for chat %d", timer_id, chat_id)
            return False
        return await self.scheduler.stop(timer_id) is not None
