"""Tests for src.data.models — Timer dataclass."""

from dataclasses import asdict
from datetime import datetime, timedelta, timezone

from src.data.models import Timer, new_timer_id

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _timer(**kwargs):
    defaults = dict(id="abc", event_date=NOW + timedelta(hours=1), chat_id=42)
    defaults.update(kwargs)
    return Timer(**defaults)


def test_timer_defaults():
    timer = _timer()
    assert timer.pinned_message_id is None
    assert timer.is_running is True
    assert timer.timezone == "UTC"
    assert timer.created_at.tzinfo is not None


def test_remaining_seconds():
    assert _timer().remaining(NOW) == 3600
    assert _timer(event_date=NOW - timedelta(seconds=5)).remaining(NOW) == -5


def test_is_stale_when_past():
    assert _timer(event_date=NOW).is_stale(NOW) is True
    assert _timer(event_date=NOW + timedelta(seconds=1)).is_stale(NOW) is False


def test_is_stale_when_not_running():
    assert _timer(is_running=False).is_stale(NOW) is True


def test_new_timer_id_is_unique_hex():
    ids = {new_timer_id() for _ in range(1000)}
    assert len(ids) == 1000
    assert all(len(i) == 32 and int(i, 16) >= 0 for i in ids)


def test_timer_serializable():
    d = asdict(_timer(pinned_message_id=7))
    assert d["chat_id"] == 42
    assert d["pinned_message_id"] == 7
