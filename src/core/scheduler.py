"""
Countdown Bot — Timer Scheduler.

One asyncio task per running timer. Every tick the task:

  1. stops quietly if the timer left the registry or was marked not running,
  2. sweeps the other timers of the same chat and tears down stale ones,
  3. expires the timer once its instant has passed (unpin, delete,
     "time's up", drop the row),
  4. otherwise renders the remaining time and edits the pinned status
     message, posting and pinning a new one when there is none,
  5. writes pinned_message_id / is_running back to the store.

A pin rejected for lack of rights ends the timer without "time's up".
A storage failure or any unexpected exception ends only the offending
timer's task; every other timer keeps running.

This module is provider-agnostic: it depends on the MessagePublisher and
TimerStore protocols, not on Telegram or SQLite.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from src.core.countdown import format_event_date, format_remaining
from src.core.texts import t
from src.ports.message_port import (
    MessageGone,
    MessageNotModified,
    PinForbidden,
    PublisherError,
)
from src.ports.storage_port import StorageError

if TYPE_CHECKING:
    from src.core.registry import TimerRegistry
    from src.data.models import Timer
    from src.ports.message_port import MessagePublisher
    from src.ports.storage_port import TimerStore

logger = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS = 5.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimerScheduler:
    """Owns the update loop of every active timer."""

    def __init__(
        self,
        registry: TimerRegistry,
        store: TimerStore,
        publisher: MessagePublisher,
        *,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        locale: str = "ru",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._registry = registry
        self._store = store
        self._publisher = publisher
        self._tick_seconds = tick_seconds
        self._locale = locale
        self._clock = clock
        self._tasks: dict[str, asyncio.Task] = {}
        # Last text shown in each timer's status message
        self._rendered: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Task management
    # ------------------------------------------------------------------

    def spawn(self, timer_id: str) -> asyncio.Task:
        """Start the update loop for a timer already in the registry."""
        existing = self._tasks.get(timer_id)
        if existing is not None and not existing.done():
            return existing
        task = asyncio.create_task(self._run(timer_id), name=f"timer-{timer_id}")
        self._tasks[timer_id] = task
        logger.debug("Timer %s task spawned", timer_id)
        return task

    def cancel(self, timer_id: str) -> None:
        """Cancel a timer's task right away (no-op for the calling task itself)."""
        task = self._tasks.pop(timer_id, None)
        self._rendered.pop(timer_id, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def is_active(self, timer_id: str) -> bool:
        task = self._tasks.get(timer_id)
        return task is not None and not task.done()

    async def shutdown(self) -> None:
        """Cancel every task. Persisted rows stay running for the next start."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Timer scheduler stopped (%d tasks cancelled)", len(tasks))

    async def _run(self, timer_id: str) -> None:
        try:
            while await self._guarded_tick(timer_id):
                await asyncio.sleep(self._tick_seconds)
        except asyncio.CancelledError:
            logger.debug("Timer %s task cancelled", timer_id)
            raise
        finally:
            if self._tasks.get(timer_id) is asyncio.current_task():
                del self._tasks[timer_id]
                self._rendered.pop(timer_id, None)

    async def _guarded_tick(self, timer_id: str) -> bool:
        """Run one tick; any failure ends this timer only."""
        snapshot = self._registry.get(timer_id)
        try:
            return await self.tick(timer_id)
        except StorageError as exc:
            logger.error("Timer %s stopped: storage failure: %s", timer_id, exc)
        except Exception:
            logger.exception("Timer %s stopped: unexpected error", timer_id)
        await self._abort(timer_id, snapshot)
        return False

    # ------------------------------------------------------------------
    # One tick
    # ------------------------------------------------------------------

    async def tick(self, timer_id: str) -> bool:
        """Advance one timer by one tick. Returns False once it has terminated."""
        timer = self._registry.get(timer_id)
        if timer is None:
            logger.debug("Timer %s no longer active, stopping", timer_id)
            return False
        if not timer.is_running:
            await self._teardown(timer_id, announce=False)
            return False

        now = self._clock()
        await self.sweep(timer.chat_id, now, skip=timer_id)

        if timer.remaining(now) <= 0:
            await self._teardown(timer_id, announce=True)
            return False

        remaining = format_remaining(now, timer.event_date, timer.timezone, self._locale)
        text = t("status", self._locale, remaining=remaining)

        if timer.pinned_message_id is not None:
            await self._edit_status(timer, text)
        elif not await self._post_status(timer, text):
            return False

        current = self._registry.get(timer_id)
        if current is None:
            # Deleted while we were talking to the chat
            return False
        self._store.update(current.id, current.pinned_message_id, current.is_running)
        return current.is_running

    async def sweep(self, chat_id: int, now: datetime, skip: str | None = None) -> int:
        """Tear down stale timers of a chat. Returns how many were removed."""
        removed = 0
        for other in self._registry.list_by_chat(chat_id):
            if other.id == skip or not other.is_stale(now):
                continue
            try:
                # Only timers that ran out get "time's up"; stopped ones were stopped on purpose
                if await self._teardown(other.id, announce=other.is_running):
                    removed += 1
            except Exception:
                logger.exception("Cleanup sweep failed for timer %s", other.id)
            self.cancel(other.id)
        if removed:
            logger.info("Cleanup sweep removed %d stale timer(s) in chat %d", removed, chat_id)
        return removed

    async def _edit_status(self, timer: Timer, text: str) -> None:
        if self._rendered.get(timer.id) == text:
            return
        try:
            await self._publisher.edit(timer.chat_id, timer.pinned_message_id, text)
        except MessageNotModified:
            pass
        except MessageGone:
            logger.info("Status message of timer %s is gone, a new one will be posted", timer.id)
            self._registry.update(timer.id, pinned_message_id=None)
            self._rendered.pop(timer.id, None)
            return
        self._rendered[timer.id] = text

    async def _post_status(self, timer: Timer, text: str) -> bool:
        """Send and pin a fresh status message. False if the timer ended."""
        message_id = await self._publisher.send(timer.chat_id, text)
        try:
            await self._publisher.pin(timer.chat_id, message_id)
        except PinForbidden:
            logger.warning("Timer %s lost pin rights in chat %d", timer.id, timer.chat_id)
            await self._clear_message(timer.chat_id, message_id, pinned=False)
            await self._notify(timer.chat_id, t("need_pin_rights", self._locale))
            self._registry.update(timer.id, is_running=False)
            await self._teardown(timer.id, announce=False)
            return False

        if self._registry.update(timer.id, pinned_message_id=message_id) is None:
            # Deleted between send and pin: don't leave an orphan behind
            await self._clear_message(timer.chat_id, message_id)
            return False
        self._rendered[timer.id] = text
        return True

    # ------------------------------------------------------------------
    # Termination
    # ------------------------------------------------------------------

    async def stop(self, timer_id: str) -> Timer | None:
        """Delete a timer on user request.

        The row is marked not running before anything else, so a failed
        delete can't bring the timer back on the next start. A StorageError
        from that first write propagates with the timer left untouched.
        Returns the removed timer, or None if it was not active.
        """
        current = self._registry.get(timer_id)
        if current is None:
            return None
        self._store.update(timer_id, current.pinned_message_id, False)
        timer = self._registry.remove(timer_id)
        if timer is None:
            return None
        self.cancel(timer_id)
        if timer.pinned_message_id is not None:
            await self._clear_message(timer.chat_id, timer.pinned_message_id)
        try:
            self._store.delete(timer_id)
        except StorageError as exc:
            logger.error("Row of deleted timer %s kept as not running: %s", timer_id, exc)
        logger.info("Timer %s deleted by user in chat %d", timer_id, timer.chat_id)
        return timer

    async def _teardown(self, timer_id: str, *, announce: bool) -> bool:
        """Remove a timer for good. Only the caller that claims it does the work."""
        timer = self._registry.remove(timer_id)
        if timer is None:
            return False
        self._rendered.pop(timer_id, None)
        if timer.pinned_message_id is not None:
            await self._clear_message(timer.chat_id, timer.pinned_message_id)
        if announce:
            await self._notify(timer.chat_id, t("times_up", self._locale))
        self._store.delete(timer_id)
        logger.info(
            "Timer %s terminated in chat %d (%s)",
            timer_id, timer.chat_id, "expired" if announce else "stopped",
        )
        return True

    async def _abort(self, timer_id: str, snapshot: Timer | None) -> None:
        """Best-effort cleanup after a failed tick."""
        timer = self._registry.remove(timer_id) or snapshot
        self._rendered.pop(timer_id, None)
        if timer is None:
            return
        if timer.pinned_message_id is not None:
            await self._clear_message(timer.chat_id, timer.pinned_message_id)
        try:
            self._store.delete(timer_id)
        except StorageError as exc:
            logger.error("Could not delete row of failed timer %s: %s", timer_id, exc)
        date = format_event_date(timer.event_date, timer.timezone)
        await self._notify(timer.chat_id, t("timer_stopped", self._locale, date=date))

    # ------------------------------------------------------------------
    # Publisher helpers
    # ------------------------------------------------------------------

    async def _clear_message(self, chat_id: int, message_id: int, pinned: bool = True) -> None:
        """Unpin and delete a status message, tolerating one that is already gone."""
        if pinned:
            try:
                await self._publisher.unpin(chat_id, message_id)
            except MessageGone:
                pass
            except PublisherError as exc:
                logger.warning("Failed to unpin message %d in chat %d: %s", message_id, chat_id, exc)
        try:
            await self._publisher.delete(chat_id, message_id)
        except MessageGone:
            pass
        except PublisherError as exc:
            logger.warning("Failed to delete message %d in chat %d: %s", message_id, chat_id, exc)

    async def _notify(self, chat_id: int, text: str) -> None:
        try:
            await self._publisher.send(chat_id, text)
        except PublisherError as exc:
            logger.warning("Failed to notify chat %d: %s", chat_id, exc)
