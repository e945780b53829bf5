"""Remaining-time breakdown — pure business logic.

Splits the span between now and a timer's instant into years, months, days,
hours, minutes and seconds the way a calendar does (Jan 31 → Mar 1 is one
month and one day, not "29 days"), then formats it with correct plurals.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from src.core.texts import unit_word

UNITS = ("years", "months", "days", "hours", "minutes", "seconds")


@dataclass(frozen=True)
class Breakdown:
    """Calendar-aware remaining time."""

    years: int = 0
    months: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def parts(self) -> list[tuple[str, int]]:
        return [(unit, getattr(self, unit)) for unit in UNITS]


def _elapsed(start: datetime, wall: datetime, tz: ZoneInfo) -> timedelta:
    """Real time between two naive wall-clock readings of tz."""
    return (
        wall.replace(tzinfo=tz).astimezone(timezone.utc)
        - start.replace(tzinfo=tz).astimezone(timezone.utc)
    )


def breakdown(now: datetime, event_date: datetime, tz_name: str = "UTC") -> Breakdown:
    """Decompose event_date - now in the civil calendar of tz_name.

    Years, months and days are counted on local dates; hours, minutes and
    seconds are what is really left after them, so a span crossing a DST
    change still adds up to event_date - now.
    Returns an all-zero Breakdown once the instant has passed.
    """
    tz = ZoneInfo(tz_name)
    now = now.astimezone(timezone.utc).replace(microsecond=0)
    event_date = event_date.astimezone(timezone.utc).replace(microsecond=0)
    total = event_date - now
    if total <= timedelta(0):
        return Breakdown()

    start = now.astimezone(tz).replace(tzinfo=None)
    end = event_date.astimezone(tz).replace(tzinfo=None)
    delta = relativedelta(end, start)
    calendar = relativedelta(years=delta.years, months=delta.months, days=delta.days)
    rest = total - _elapsed(start, start + calendar, tz)

    # A shifted clock can push the remainder out of [0, 1 day)
    while rest < timedelta(0):
        calendar = relativedelta(start + calendar - timedelta(days=1), start)
        rest = total - _elapsed(start, start + calendar, tz)
    while rest >= timedelta(days=1):
        forward = relativedelta(start + calendar + timedelta(days=1), start)
        left = total - _elapsed(start, start + forward, tz)
        if left < timedelta(0):
            break
        calendar, rest = forward, left

    minutes, seconds = divmod(int(rest.total_seconds()), 60)
    hours, minutes = divmod(minutes, 60)
    return Breakdown(
        years=calendar.years,
        months=calendar.months,
        days=calendar.days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
    )


def format_breakdown(parts: Breakdown, locale: str = "ru") -> str:
    """Render a Breakdown, dropping zero units except the trailing seconds.

    >>> format_breakdown(Breakdown(days=2, seconds=5), "en")
    '2 days, 5 seconds'
    """
    chunks = [
        f"{value} {unit_word(unit, value, locale)}"
        for unit, value in parts.parts()
        if value or unit == "seconds"
    ]
    return ", ".join(chunks)


def format_remaining(
    now: datetime, event_date: datetime, tz_name: str = "UTC", locale: str = "ru",
) -> str:
    """Shortcut: breakdown + format."""
    return format_breakdown(breakdown(now, event_date, tz_name), locale)


def format_event_date(event_date: datetime, tz_name: str = "UTC") -> str:
    """Render a timer's instant as local 'YYYY-MM-DD HH:MM'."""
    return event_date.astimezone(ZoneInfo(tz_name)).strftime("%Y-%m-%d %H:%M")
