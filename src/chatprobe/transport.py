"""
Contract for the chat transport a bot talks to.

The transport is the wire-level client of a chat platform. chatprobe never
implements one for a real platform; it only relies on the operations below.
See chatprobe.testing.FakeChatService for an in-memory implementation.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

EventCallback = Callable[[Mapping[str, Any]], None]


@runtime_checkable
class ChatTransport(Protocol):
    """
    Protocol for chat transports.

    Implementations must deliver events to subscribed callbacks in the order
    the platform produced them, for as long as the subscription lasts.
    """

    async def authenticate(self, token: str) -> str:
        """
        Authenticate with the platform.

        Args:
            token: Credential for the bot account

        Returns:
            The id of the authenticated identity
        """
        ...

    async def subscribe(self, on_event: EventCallback) -> None:
        """Start delivering the live event stream to a callback."""
        ...

    async def unsubscribe(self, on_event: EventCallback) -> None:
        """Stop delivering events to a callback. Unknown callbacks are ignored."""
        ...

    async def post_message(self, channel_id: str, text: str) -> Mapping[str, Any]:
        """
        Post a message as the authenticated identity.

        Returns:
            The platform's acknowledgement of the posted message
        """
        ...


__all__ = ["ChatTransport", "EventCallback"]
