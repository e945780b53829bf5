"""Domain errors raised by the timer core and reported by the bot layer.

Port-level errors (StorageError, PublisherError and its subclasses) live next
to their protocols in src.ports.
"""

from __future__ import annotations


class TimerError(Exception):
    """Base class for user-reportable timer errors."""


class DateValidationError(TimerError):
    """A typed or picked date is malformed or can't be resolved to an instant."""


class SelectionError(TimerError):
    """A picker choice arrived out of order or outside the offered options."""


class PermissionDeniedError(TimerError):
    """The bot has no pin authority in the target chat."""

    def __init__(self, chat_id: int, reason: str = "need_pin_rights") -> None:
        super().__init__(f"No pin authority in chat {chat_id}")
        self.chat_id = chat_id
        self.reason = reason
