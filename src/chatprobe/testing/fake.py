"""
In-memory chat service for testing bots without a network.

FakeChatService implements both ChatTransport and DirectoryApi. Tests
populate its directory, script replies to messages the bot posts, and push
events into the stream directly.

Example:
    >>> service = FakeChatService(bot_user_id="UBOT")
    >>> service.add_member("U1", "alice")
    >>> service.add_direct_channel("D1", user="U1")
    >>> service.reply_to("help", "hi", user="U1")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from chatprobe.transport import EventCallback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostedMessage:
    """A message the bot posted through the fake service."""

    channel: str
    text: str
    user: str | None
    posted_at: float


@dataclass(frozen=True)
class _Reply:
    trigger: str
    reply: Mapping[str, Any]
    delay: float


class FakeChatService:
    """
    Scriptable in-memory chat platform.

    Attributes:
        bot_user_id: Identity returned by authenticate()
        posted: Every message posted, in order
        calls: (operation name, loop time) for every transport or listing call
        echo: If True, posted messages come back through the event stream
            authored by the bot, as real platforms do
    """

    def __init__(self, bot_user_id: str = "UBOT", *, echo: bool = False) -> None:
        self.bot_user_id = bot_user_id
        self.echo = echo
        self.posted: list[PostedMessage] = []
        self.calls: list[tuple[str, float]] = []

        self._subscribers: list[EventCallback] = []
        self._members: list[dict[str, Any]] = []
        self._channels: list[dict[str, Any]] = []
        self._groups: list[dict[str, Any]] = []
        self._direct_channels: list[dict[str, Any]] = []
        self._replies: list[_Reply] = []
        self._failures: dict[str, Exception] = {}
        self._authenticated_token: str | None = None

    # ------------------------------------------------------------------
    # Scripting
    # ------------------------------------------------------------------

    def add_member(self, user_id: str, name: str) -> None:
        self._members.append({"id": user_id, "name": name})

    def add_channel(self, channel_id: str, name: str) -> None:
        self._channels.append({"id": channel_id, "name": name, "is_channel": True})

    def add_group(self, group_id: str, name: str) -> None:
        self._groups.append({"id": group_id, "name": name, "is_group": True})

    def add_direct_channel(self, channel_id: str, *, user: str) -> None:
        self._direct_channels.append({"id": channel_id, "user": user, "is_im": True})

    def reply_to(
        self,
        trigger: str,
        reply: str | Mapping[str, Any],
        *,
        user: str = "UOTHER",
        delay: float = 0.0,
    ) -> None:
        """
        Answer every posted message whose text equals ``trigger``.

        A text reply becomes a message event from ``user`` in the channel
        the trigger was posted in. A mapping reply is emitted as given,
        with ``channel`` filled in when it is missing.
        """
        if isinstance(reply, str):
            event: dict[str, Any] = {"type": "message", "text": reply, "user": user}
        else:
            event = dict(reply)
        self._replies.append(_Reply(trigger, event, delay))

    def fail_on(self, operation: str, error: Exception) -> None:
        """Make the next call of an operation raise ``error``."""
        self._failures[operation] = error

    def emit(self, event: Mapping[str, Any]) -> None:
        """Deliver an event to every subscriber right now."""
        for callback in list(self._subscribers):
            callback(event)

    def emit_later(self, event: Mapping[str, Any], delay: float) -> asyncio.TimerHandle:
        """Deliver an event after ``delay`` seconds."""
        return asyncio.get_running_loop().call_later(delay, self.emit, event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def authenticated_token(self) -> str | None:
        return self._authenticated_token

    def _record(self, operation: str) -> None:
        self.calls.append((operation, asyncio.get_running_loop().time()))
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    # ------------------------------------------------------------------
    # ChatTransport
    # ------------------------------------------------------------------

    async def authenticate(self, token: str) -> str:
        self._record("authenticate")
        self._authenticated_token = token
        return self.bot_user_id

    async def subscribe(self, on_event: EventCallback) -> None:
        self._record("subscribe")
        self._subscribers.append(on_event)

    async def unsubscribe(self, on_event: EventCallback) -> None:
        if on_event in self._subscribers:
            self._subscribers.remove(on_event)

    async def post_message(self, channel_id: str, text: str) -> Mapping[str, Any]:
        self._record("post_message")
        loop = asyncio.get_running_loop()
        self.posted.append(PostedMessage(channel_id, text, self.bot_user_id, loop.time()))
        logger.debug(
            f"Posted message to {channel_id}",
            extra={"channel_id": channel_id, "text": text},
        )

        if self.echo:
            self.emit(
                {"type": "message", "channel": channel_id, "text": text, "user": self.bot_user_id}
            )

        for scripted in self._replies:
            if scripted.trigger != text:
                continue
            event = {"channel": channel_id, **scripted.reply}
            if scripted.delay > 0:
                self.emit_later(event, scripted.delay)
            else:
                loop.call_soon(self.emit, event)

        return {"ok": True, "channel": channel_id, "message": {"text": text}}

    # ------------------------------------------------------------------
    # DirectoryApi
    # ------------------------------------------------------------------

    async def list_members(self) -> list[dict[str, Any]]:
        self._record("list_members")
        return list(self._members)

    async def list_channels(self) -> list[dict[str, Any]]:
        self._record("list_channels")
        return list(self._channels)

    async def list_groups(self) -> list[dict[str, Any]]:
        self._record("list_groups")
        return list(self._groups)

    async def list_direct_channels(self) -> list[dict[str, Any]]:
        self._record("list_direct_channels")
        return list(self._direct_channels)


__all__ = ["FakeChatService", "PostedMessage"]
