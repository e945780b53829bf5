"""Inline-button payloads as typed actions.

Telegram hands back a short string per button tap. Handlers never look at
that string; they get one of the action classes below from `decode`.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.date_picker import SelectionKind


@dataclass(frozen=True)
class PickComponent:
    """A picker button: one date/time component was chosen."""
    kind: SelectionKind
    value: int


@dataclass(frozen=True)
class ChooseTimer:
    """A timer was picked from the /cleartimer list."""
    timer_id: str


@dataclass(frozen=True)
class ConfirmDelete:
    timer_id: str


@dataclass(frozen=True)
class CancelDelete:
    pass


CallbackAction = PickComponent | ChooseTimer | ConfirmDelete | CancelDelete


def encode(action: CallbackAction) -> str:
    """Serialize an action into callback_data (well under Telegram's 64 bytes)."""
    if isinstance(action, PickComponent):
        return f"pick:{action.kind.value}:{action.value}"
    if isinstance(action, ChooseTimer):
        return f"deltimer:{action.timer_id}"
    if isinstance(action, ConfirmDelete):
        return f"delconfirm:{action.timer_id}"
    if isinstance(action, CancelDelete):
        return "delcancel"
    raise TypeError(f"Unknown callback action: {action!r}")


def decode(data: str | None) -> CallbackAction | None:
    """Parse callback_data back into an action. None for anything unknown."""
    if not data:
        return None
    tag, _, rest = data.partition(":")

    if tag == "pick":
        kind, _, value = rest.partition(":")
        try:
            return PickComponent(SelectionKind(kind), int(value))
        except ValueError:
            return None
    if tag == "deltimer" and rest:
        return ChooseTimer(rest)
    if tag == "delconfirm" and rest:
        return ConfirmDelete(rest)
    if tag == "delcancel" and not rest:
        return CancelDelete()
    return None
