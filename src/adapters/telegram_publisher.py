"""Telegram messaging adapter — implements MessagePublisher and PermissionChecker.

Wraps a telegram.Bot instance and turns Bot API errors into the port
exceptions, so the core can ignore "not modified" / "already gone" and react
to a missing pin right.
"""

from __future__ import annotations

import logging

from telegram import Bot
from telegram.constants import ChatMemberStatus, ChatType
from telegram.error import BadRequest, Forbidden, TelegramError

from src.ports.message_port import (
    MessageGone,
    MessageNotModified,
    PinForbidden,
    PublisherError,
)

logger = logging.getLogger(__name__)

# Fragments of Bot API error descriptions, lower-cased
_NOT_MODIFIED = "message is not modified"
_GONE = (
    "message to edit not found",
    "message to delete not found",
    "message to unpin not found",
    "message can't be deleted",
    "message not found",
)
_NO_PIN_RIGHTS = (
    "not enough rights",
    "have no rights",
    "chat_admin_required",
)


def _describe(exc: TelegramError) -> str:
    return exc.message.lower()


class TelegramPublisher:
    """Telegram implementation of MessagePublisher and PermissionChecker."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send(self, chat_id: int, text: str) -> int:
        try:
            message = await self._bot.send_message(chat_id=chat_id, text=text)
        except TelegramError as exc:
            raise PublisherError(f"send_message failed in chat {chat_id}: {exc}") from exc
        return message.message_id

    async def edit(self, chat_id: int, message_id: int, text: str) -> None:
        try:
            await self._bot.edit_message_text(
                text=text, chat_id=chat_id, message_id=message_id,
            )
        except BadRequest as exc:
            reason = _describe(exc)
            if _NOT_MODIFIED in reason:
                raise MessageNotModified(str(exc)) from exc
            if any(fragment in reason for fragment in _GONE):
                raise MessageGone(str(exc)) from exc
            raise PublisherError(f"edit_message_text failed: {exc}") from exc
        except TelegramError as exc:
            raise PublisherError(f"edit_message_text failed: {exc}") from exc

    async def delete(self, chat_id: int, message_id: int) -> None:
        try:
            await self._bot.delete_message(chat_id=chat_id, message_id=message_id)
        except BadRequest as exc:
            if any(fragment in _describe(exc) for fragment in _GONE):
                raise MessageGone(str(exc)) from exc
            raise PublisherError(f"delete_message failed: {exc}") from exc
        except TelegramError as exc:
            raise PublisherError(f"delete_message failed: {exc}") from exc

    async def pin(self, chat_id: int, message_id: int) -> None:
        try:
            await self._bot.pin_chat_message(
                chat_id=chat_id, message_id=message_id, disable_notification=True,
            )
        except Forbidden as exc:
            raise PinForbidden(str(exc)) from exc
        except BadRequest as exc:
            if any(fragment in _describe(exc) for fragment in _NO_PIN_RIGHTS):
                raise PinForbidden(str(exc)) from exc
            raise PublisherError(f"pin_chat_message failed: {exc}") from exc
        except TelegramError as exc:
            raise PublisherError(f"pin_chat_message failed: {exc}") from exc

    async def unpin(self, chat_id: int, message_id: int) -> None:
        try:
            await self._bot.unpin_chat_message(chat_id=chat_id, message_id=message_id)
        except BadRequest as exc:
            if any(fragment in _describe(exc) for fragment in _GONE):
                raise MessageGone(str(exc)) from exc
            raise PublisherError(f"unpin_chat_message failed: {exc}") from exc
        except TelegramError as exc:
            raise PublisherError(f"unpin_chat_message failed: {exc}") from exc

    async def has_pin_authority(self, chat_id: int) -> bool:
        """Check whether the bot may pin messages in chat_id.

        Private chats always allow it. In groups the bot must be the owner,
        an admin with can_pin_messages, or a member of a group whose default
        permissions let everyone pin. In channels pinning needs
        can_edit_messages.
        """
        try:
            chat = await self._bot.get_chat(chat_id)
            if chat.type == ChatType.PRIVATE:
                return True
            member = await self._bot.get_chat_member(chat_id, self._bot.id)
        except (Forbidden, BadRequest) as exc:
            logger.info("Pin authority lookup failed in chat %d: %s", chat_id, exc)
            return False

        if member.status == ChatMemberStatus.OWNER:
            return True
        if member.status == ChatMemberStatus.ADMINISTRATOR:
            if chat.type == ChatType.CHANNEL:
                return bool(getattr(member, "can_edit_messages", False))
            return bool(getattr(member, "can_pin_messages", False))
        if member.status == ChatMemberStatus.RESTRICTED:
            return bool(getattr(member, "can_pin_messages", False))
        if member.status == ChatMemberStatus.MEMBER and chat.permissions is not None:
            return bool(chat.permissions.can_pin_messages)
        return False
