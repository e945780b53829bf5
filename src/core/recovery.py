"""Startup recovery: resume the timers that were running before a restart."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from src.core.permission_guard import PermissionGuard
    from src.core.registry import TimerRegistry
    from src.core.scheduler import TimerScheduler
    from src.ports.storage_port import TimerStore

logger = logging.getLogger(__name__)


async def recover_timers(
    store: TimerStore,
    registry: TimerRegistry,
    scheduler: TimerScheduler,
    guard: PermissionGuard,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> int:
    """Reload running timers from the store and restart their loops.

    Timers that expired while the bot was down, and timers whose chat no
    longer grants pin rights, are deleted without any message.
    A StorageError while loading propagates: the bot must not start with
    a partial view of its timers.

    Returns the number of resumed timers.
    """
    timers = store.list_running()
    now = clock()
    resumed = 0

    for timer in timers:
        if timer.event_date <= now:
            store.delete(timer.id)
            logger.info("Recovery: discarded timer %s, expired while offline", timer.id)
            continue

        try:
            allowed, _ = await guard.can_create(timer.chat_id)
        except Exception as exc:
            # The first tick will find out if pinning really is gone
            logger.warning(
                "Recovery: permission check failed for chat %d (%s), resuming timer %s",
                timer.chat_id, exc, timer.id,
            )
            allowed = True

        if not allowed:
            store.delete(timer.id)
            logger.info("Recovery: discarded timer %s, pin rights revoked", timer.id)
            continue

        registry.add(timer)
        scheduler.spawn(timer.id)
        resumed += 1

    logger.info("Recovery: resumed %d of %d running timer(s)", resumed, len(timers))
    return resumed
