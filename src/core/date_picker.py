"""
Countdown Bot — Date Picker.

The interactive /setdate flow: a per-user state machine collecting
year → month → day → hour → minute from inline buttons, plus the parser for
the one-line `/setdate YYYY-MM-DD HH:MM` form.

Sessions are transient. SessionStore keeps them in memory only, drops them
on completion and evicts the oldest ones past a fixed cap.
"""

from __future__ import annotations

import calendar
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from zoneinfo import ZoneInfo

from src.core.errors import DateValidationError, SelectionError

logger = logging.getLogger(__name__)

YEARS_AHEAD = 5
MINUTE_OPTIONS = (0, 15, 30, 45)


class SelectionKind(str, Enum):
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    HOUR = "hour"
    MINUTE = "minute"


# Order in which components must be chosen
_ORDER = (
    SelectionKind.YEAR,
    SelectionKind.MONTH,
    SelectionKind.DAY,
    SelectionKind.HOUR,
    SelectionKind.MINUTE,
)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


@dataclass
class DateSelectionSession:
    """One user's progress through the picker."""

    chat_id: int
    year: int | None = None
    month: int | None = None
    day: int | None = None
    hour: int | None = None
    minute: int | None = None
    # Picker message this session drives; set once it is posted
    message_id: int | None = None

    @property
    def expected(self) -> SelectionKind | None:
        """The component the next choice must fill, or None when complete."""
        for kind in _ORDER:
            if getattr(self, kind.value) is None:
                return kind
        return None

    @property
    def is_complete(self) -> bool:
        return self.expected is None

    def options(self, today: date) -> list[int]:
        """Values offered for the next step. Empty once complete."""
        kind = self.expected
        if kind is SelectionKind.YEAR:
            return [today.year + i for i in range(YEARS_AHEAD)]
        if kind is SelectionKind.MONTH:
            return list(range(1, 13))
        if kind is SelectionKind.DAY:
            return list(range(1, days_in_month(self.year, self.month) + 1))
        if kind is SelectionKind.HOUR:
            return list(range(24))
        if kind is SelectionKind.MINUTE:
            return list(MINUTE_OPTIONS)
        return []

    def select(self, kind: SelectionKind, value: int, today: date) -> SelectionKind | None:
        """Record one choice and return the next expected kind.

        Raises SelectionError (leaving the session untouched) if the choice
        is for the wrong step or not among the offered values.
        """
        expected = self.expected
        if kind is not expected:
            raise SelectionError(
                f"Expected {expected.value if expected else 'nothing'}, got {kind.value}"
            )
        if value not in self.options(today):
            raise SelectionError(f"{value} is not a valid {kind.value}")
        setattr(self, kind.value, value)
        return self.expected

    def resolve(self, tz_name: str) -> datetime:
        """Turn the completed selection into an aware instant in tz_name."""
        if not self.is_complete:
            raise DateValidationError("Date selection is not complete")
        return resolve_local(
            self.year, self.month, self.day, self.hour, self.minute, tz_name,
        )


def resolve_local(
    year: int, month: int, day: int, hour: int, minute: int, tz_name: str,
) -> datetime:
    """Attach tz_name to a civil date/time, rejecting ones the zone skips.

    A wall-clock time inside a DST gap does not exist; it is detected by
    round-tripping through UTC.
    """
    try:
        local = datetime(year, month, day, hour, minute, tzinfo=ZoneInfo(tz_name))
    except ValueError as exc:
        raise DateValidationError(str(exc)) from exc

    round_trip = local.astimezone(timezone.utc).astimezone(local.tzinfo)
    if round_trip.replace(tzinfo=None) != local.replace(tzinfo=None):
        raise DateValidationError(
            f"{local.replace(tzinfo=None).isoformat()} does not exist in {tz_name}"
        )
    return local


_DIRECT_RE = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2})\s*$")


def parse_direct_date(text: str, tz_name: str) -> datetime:
    """Parse 'YYYY-MM-DD HH:MM' into an aware instant.

    Past instants are accepted: the timer simply expires on its first tick.
    Raises DateValidationError on a malformed or impossible date.
    """
    match = _DIRECT_RE.match(text or "")
    if match is None:
        raise DateValidationError(f"Expected YYYY-MM-DD HH:MM, got {text!r}")
    year, month, day, hour, minute = (int(g) for g in match.groups())
    return resolve_local(year, month, day, hour, minute, tz_name)


class SessionStore:
    """Picker sessions keyed by user id, bounded in size."""

    def __init__(self, max_sessions: int = 1000) -> None:
        self._sessions: OrderedDict[int, DateSelectionSession] = OrderedDict()
        self._max = max_sessions

    def start(self, user_id: int, chat_id: int) -> DateSelectionSession:
        """Begin (or restart) a selection for user_id."""
        session = DateSelectionSession(chat_id=chat_id)
        self._sessions.pop(user_id, None)
        self._sessions[user_id] = session
        while len(self._sessions) > self._max:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug("Evicted stale date selection of user %d", evicted)
        return session

    def get(self, user_id: int) -> DateSelectionSession | None:
        return self._sessions.get(user_id)

    def discard(self, user_id: int) -> None:
        self._sessions.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
