"""Tests for src.adapters.telegram_publisher — Bot API error mapping and pin authority."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ChatMemberStatus, ChatType
from telegram.error import BadRequest, Forbidden, NetworkError

from src.adapters.telegram_publisher import TelegramPublisher
from src.ports.message_port import (
    MessageGone,
    MessageNotModified,
    PinForbidden,
    PublisherError,
)


@pytest.fixture
def bot():
    bot = MagicMock()
    bot.id = 999
    bot.send_message = AsyncMock(return_value=MagicMock(message_id=55))
    bot.edit_message_text = AsyncMock()
    bot.delete_message = AsyncMock()
    bot.pin_chat_message = AsyncMock()
    bot.unpin_chat_message = AsyncMock()
    bot.get_chat = AsyncMock()
    bot.get_chat_member = AsyncMock()
    return bot


@pytest.fixture
def adapter(bot):
    return TelegramPublisher(bot)


class TestSend:
    @pytest.mark.asyncio
    async def test_returns_message_id(self, adapter, bot):
        assert await adapter.send(1, "hi") == 55
        bot.send_message.assert_awaited_once_with(chat_id=1, text="hi")

    @pytest.mark.asyncio
    async def test_failure_becomes_publisher_error(self, adapter, bot):
        bot.send_message.side_effect = Forbidden("bot was kicked from the group chat")
        with pytest.raises(PublisherError):
            await adapter.send(1, "hi")


class TestEdit:
    @pytest.mark.asyncio
    async def test_not_modified(self, adapter, bot):
        bot.edit_message_text.side_effect = BadRequest(
            "Message is not modified: specified new message content and reply markup "
            "are exactly the same as a current content and reply markup of the message"
        )
        with pytest.raises(MessageNotModified):
            await adapter.edit(1, 2, "same")

    @pytest.mark.asyncio
    async def test_gone(self, adapter, bot):
        bot.edit_message_text.side_effect = BadRequest("Message to edit not found")
        with pytest.raises(MessageGone):
            await adapter.edit(1, 2, "text")

    @pytest.mark.asyncio
    async def test_other_bad_request(self, adapter, bot):
        bot.edit_message_text.side_effect = BadRequest("Chat not found")
        with pytest.raises(PublisherError) as excinfo:
            await adapter.edit(1, 2, "text")
        assert not isinstance(excinfo.value, (MessageGone, MessageNotModified))

    @pytest.mark.asyncio
    async def test_network_error(self, adapter, bot):
        bot.edit_message_text.side_effect = NetworkError("connection reset")
        with pytest.raises(PublisherError):
            await adapter.edit(1, 2, "text")


class TestDeleteAndUnpin:
    @pytest.mark.asyncio
    async def test_delete_gone(self, adapter, bot):
        bot.delete_message.side_effect = BadRequest("Message to delete not found")
        with pytest.raises(MessageGone):
            await adapter.delete(1, 2)

    @pytest.mark.asyncio
    async def test_unpin_gone(self, adapter, bot):
        bot.unpin_chat_message.side_effect = BadRequest("Message to unpin not found")
        with pytest.raises(MessageGone):
            await adapter.unpin(1, 2)


class TestPin:
    @pytest.mark.asyncio
    async def test_pins_silently(self, adapter, bot):
        await adapter.pin(1, 2)
        bot.pin_chat_message.assert_awaited_once_with(
            chat_id=1, message_id=2, disable_notification=True,
        )

    @pytest.mark.asyncio
    async def test_not_enough_rights(self, adapter, bot):
        bot.pin_chat_message.side_effect = BadRequest("Not enough rights to manage pinned messages in the chat")
        with pytest.raises(PinForbidden):
            await adapter.pin(1, 2)

    @pytest.mark.asyncio
    async def test_forbidden(self, adapter, bot):
        bot.pin_chat_message.side_effect = Forbidden("bot is not a member of the supergroup chat")
        with pytest.raises(PinForbidden):
            await adapter.pin(1, 2)


def _chat(chat_type, can_pin=None):
    permissions = None if can_pin is None else MagicMock(can_pin_messages=can_pin)
    return MagicMock(type=chat_type, permissions=permissions)


class TestHasPinAuthority:
    @pytest.mark.asyncio
    async def test_private_chat(self, adapter, bot):
        bot.get_chat.return_value = _chat(ChatType.PRIVATE)
        assert await adapter.has_pin_authority(1) is True
        bot.get_chat_member.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_owner(self, adapter, bot):
        bot.get_chat.return_value = _chat(ChatType.SUPERGROUP)
        bot.get_chat_member.return_value = MagicMock(status=ChatMemberStatus.OWNER)
        assert await adapter.has_pin_authority(-100) is True
        bot.get_chat_member.assert_awaited_once_with(-100, 999)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("can_pin", [True, False])
    async def test_admin_in_group(self, adapter, bot, can_pin):
        bot.get_chat.return_value = _chat(ChatType.SUPERGROUP)
        bot.get_chat_member.return_value = MagicMock(
            status=ChatMemberStatus.ADMINISTRATOR, can_pin_messages=can_pin,
        )
        assert await adapter.has_pin_authority(-100) is can_pin

    @pytest.mark.asyncio
    async def test_admin_in_channel_needs_edit_right(self, adapter, bot):
        bot.get_chat.return_value = _chat(ChatType.CHANNEL)
        bot.get_chat_member.return_value = MagicMock(
            status=ChatMemberStatus.ADMINISTRATOR, can_edit_messages=True, can_pin_messages=False,
        )
        assert await adapter.has_pin_authority(-100) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("can_pin", [True, False])
    async def test_plain_member_uses_group_defaults(self, adapter, bot, can_pin):
        bot.get_chat.return_value = _chat(ChatType.GROUP, can_pin=can_pin)
        bot.get_chat_member.return_value = MagicMock(status=ChatMemberStatus.MEMBER)
        assert await adapter.has_pin_authority(-5) is can_pin

    @pytest.mark.asyncio
    async def test_left_chat(self, adapter, bot):
        bot.get_chat.return_value = _chat(ChatType.GROUP, can_pin=True)
        bot.get_chat_member.return_value = MagicMock(status=ChatMemberStatus.LEFT)
        assert await adapter.has_pin_authority(-5) is False

    @pytest.mark.asyncio
    async def test_lookup_forbidden(self, adapter, bot):
        bot.get_chat.side_effect = Forbidden("bot was kicked from the group chat")
        assert await adapter.has_pin_authority(-5) is False
