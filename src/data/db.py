"""
Countdown Bot — Timer Database.

The durable half of the timer state: every running countdown has a row here
so it can be resumed after a restart. Implements the TimerStore port.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from src.data.models import Timer
from src.ports.storage_port import StorageError

logger = logging.getLogger(__name__)


def _to_db(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


def _from_db(raw: str) -> datetime:
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class TimerDB:
    """SQLite-backed storage for countdown timers."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the timers table if it doesn't exist, and migrate schema."""
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS timers (
                        id                TEXT    PRIMARY KEY,
                        event_date        TEXT    NOT NULL,
                        chat_id           INTEGER NOT NULL,
                        pinned_message_id INTEGER,
                        is_running        INTEGER NOT NULL DEFAULT 1
                    )
                """)
                # Migrate existing DBs: add new columns if missing
                existing_cols = {
                    row[1] for row in conn.execute("PRAGMA table_info(timers)").fetchall()
                }
                if "timezone" not in existing_cols:
                    conn.execute(
                        "ALTER TABLE timers ADD COLUMN timezone TEXT NOT NULL DEFAULT 'UTC'"
                    )
                if "created_at" not in existing_cols:
                    conn.execute("ALTER TABLE timers ADD COLUMN created_at TEXT")
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to initialize timers table: {exc}") from exc
        logger.debug("Timers table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_timer(row: sqlite3.Row) -> Timer:
        created_at = row["created_at"]
        timer = Timer(
            id=row["id"],
            event_date=_from_db(row["event_date"]),
            chat_id=row["chat_id"],
            timezone=row["timezone"],
            pinned_message_id=row["pinned_message_id"],
            is_running=bool(row["is_running"]),
        )
        if created_at:
            timer.created_at = _from_db(created_at)
        return timer

    def create(self, timer: Timer) -> Timer:
        """Insert a new timer row."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO timers
                        (id, event_date, chat_id, timezone,
                         pinned_message_id, is_running, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        timer.id, _to_db(timer.event_date), timer.chat_id,
                        timer.timezone, timer.pinned_message_id,
                        int(timer.is_running), _to_db(timer.created_at),
                    ),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to create timer {timer.id}: {exc}") from exc
        logger.info(
            "Timer %s created for chat %d at %s",
            timer.id, timer.chat_id, timer.event_date.isoformat(),
        )
        return timer

    def get(self, timer_id: str) -> Timer | None:
        """Fetch a single timer by ID."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM timers WHERE id = ?", (timer_id,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to fetch timer {timer_id}: {exc}") from exc
        if row is None:
            return None
        return self._row_to_timer(row)

    def update(
        self, timer_id: str, pinned_message_id: int | None, is_running: bool,
    ) -> bool:
        """Persist the mutable fields of a timer. Returns False if the row is gone."""
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "UPDATE timers SET pinned_message_id = ?, is_running = ? WHERE id = ?",
                    (pinned_message_id, int(is_running), timer_id),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to update timer {timer_id}: {exc}") from exc
        return cursor.rowcount > 0

    def delete(self, timer_id: str) -> bool:
        """Permanently delete a timer row."""
        try:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM timers WHERE id = ?", (timer_id,))
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to delete timer {timer_id}: {exc}") from exc
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Timer %s deleted", timer_id)
        return deleted

    def list_running(self) -> list[Timer]:
        """Return every timer still marked as running."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM timers WHERE is_running = 1 ORDER BY event_date"
                ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to list running timers: {exc}") from exc
        return [self._row_to_timer(r) for r in rows]

    def list_by_chat(self, chat_id: int) -> list[Timer]:
        """Return all timers of a chat, soonest first."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM timers WHERE chat_id = ? ORDER BY event_date",
                    (chat_id,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to list timers of chat {chat_id}: {exc}") from exc
        return [self._row_to_timer(r) for r in rows]
