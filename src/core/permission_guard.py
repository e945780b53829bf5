"""Pin-authority precondition for creating a timer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.ports.permission_port import PermissionChecker

logger = logging.getLogger(__name__)


class PermissionGuard:
    """Answers whether a timer may be created in a chat.

    A timer lives as a pinned message, so without pin authority there is
    nothing to create. Runtime loss of the right is handled by the scheduler.
    """

    def __init__(self, checker: PermissionChecker) -> None:
        self._checker = checker

    async def can_create(self, chat_id: int) -> tuple[bool, str]:
        """Return (allowed, reason). reason is a text key when not allowed."""
        if await self._checker.has_pin_authority(chat_id):
            return True, ""
        logger.info("No pin authority in chat %d", chat_id)
        return False, "need_pin_rights"
