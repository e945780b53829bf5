"""Permission port — asks the messaging provider what the bot may do in a chat."""

from __future__ import annotations

from typing import Protocol


class PermissionChecker(Protocol):
    """Abstract permission lookup used by PermissionGuard."""

    async def has_pin_authority(self, chat_id: int) -> bool: ...
