"""Message port — abstract interface for the chat messaging transport.

Core modules depend on this protocol, never on a specific messaging provider.
Adapters translate provider errors into the exceptions below so the core can
tell ignorable failures from fatal ones.
"""

from __future__ import annotations

from typing import Protocol


class PublisherError(Exception):
    """Raised when a messaging operation fails for an unexpected reason."""


class MessageNotModified(PublisherError):
    """The edit was rejected because the text is unchanged. Ignorable."""


class MessageGone(PublisherError):
    """The message is already deleted or unpinned. Ignorable."""


class PinForbidden(PublisherError):
    """The bot lacks the right to pin messages in this chat."""


class MessagePublisher(Protocol):
    """Abstract messaging interface used by core modules."""

    async def send(self, chat_id: int, text: str) -> int: ...

    async def edit(self, chat_id: int, message_id: int, text: str) -> None: ...

    async def delete(self, chat_id: int, message_id: int) -> None: ...

    async def pin(self, chat_id: int, message_id: int) -> None: ...

    async def unpin(self, chat_id: int, message_id: int) -> None: ...
