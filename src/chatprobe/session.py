"""
Bot session state and the asynchronous steps that act on it.

A BotSession holds what one chained test case needs: the channel it talks
in, the identity it authenticated as, the history of every event it
received and its wait timeout. Its coroutine methods are the raw steps;
chatprobe.chain.ChatBot sequences them into one pipeline.

Outbound calls (authenticate, subscribe, post, directory listings) go
through the shared RateLimitedQueue. Inbound expectations go through the
wait engine against the session history.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from chatprobe.config import BotConfig
from chatprobe.directory import Directory
from chatprobe.exceptions import ChannelNotSelectedError, NotConnectedError
from chatprobe.expectations import AnyExpectation, ExpectCall
from chatprobe.history import EventHistory
from chatprobe.observability import (
    ATTR_CHANNEL_ID,
    ATTR_USER_ID,
    Tracer,
    create_tracer,
)
from chatprobe.ratelimit import RateLimitedQueue
from chatprobe.transport import ChatTransport
from chatprobe.waiting import expect_any, wait_for

logger = logging.getLogger(__name__)


class BotSession:
    """
    Mutable state of one bot plus its step coroutines.

    Attributes:
        config: The configuration the session was created with
        channel_id: Channel currently addressed, None until one is selected
        user_id: The bot's own identity, None until connect() completes
        history: Every event received since creation or the last reset
        timeout: Wait timeout in seconds
    """

    def __init__(
        self,
        config: BotConfig,
        *,
        transport: ChatTransport,
        directory: Directory,
        queue: RateLimitedQueue,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self.config = config
        self.channel_id: str | None = None
        self.user_id: str | None = None
        self.history = EventHistory()
        self.timeout = config.timeout_seconds

        self._transport = transport
        self._directory = directory
        self._queue = queue
        self._listener = self.on_event
        self._subscribed = False

        self.tracer = tracer or create_tracer(__name__, enable_tracing)

    def on_event(self, event: Mapping[str, Any]) -> None:
        """Record an event delivered by the transport."""
        self.history.record(event)

    async def connect(self) -> None:
        """
        Subscribe to the live event stream and authenticate.

        The subscription is made first so nothing sent in reply to the
        bot's first message can slip past the history.
        """
        with self.tracer.span("chatprobe.bot.connect"):
            if not self._subscribed:
                await self._queue.enqueue(self._transport.subscribe, self._listener)
                self._subscribed = True
            self.user_id = await self._queue.enqueue(
                self._transport.authenticate, self.config.token
            )

        logger.info("Bot connected", extra={"user_id": self.user_id})

    def _require_connection(self, step: str) -> None:
        if self.user_id is None:
            raise NotConnectedError(step)

    def _require_channel(self, step: str) -> str:
        if self.channel_id is None:
            raise ChannelNotSelectedError(step)
        return self.channel_id

    def _select(self, channel_id: str, how: str, name: str) -> None:
        self.channel_id = channel_id
        logger.info(
            f"Selected channel {channel_id} by {how} {name}",
            extra={"channel_id": channel_id, "selected_by": how, "name": name},
        )

    async def im(self, username: str) -> None:
        """Address the direct-message channel shared with a user."""
        self._require_connection("open a direct message")
        user_id = await self._directory.resolve_user_id(username)
        channel_id = await self._directory.resolve_direct_message_channel_id(user_id)
        self._select(channel_id, "user", username)

    async def channel(self, name: str) -> None:
        """Address a public channel by name."""
        self._require_connection("select a channel")
        self._select(await self._directory.resolve_channel_id(name), "channel", name)

    async def group(self, name: str) -> None:
        """Address a private group by name."""
        self._require_connection("select a group")
        self._select(await self._directory.resolve_group_id(name), "group", name)

    async def send(self, text: str) -> Any:
        """
        Post a message in the current channel.

        Raises:
            ChannelNotSelectedError: Before anything is queued, if no channel
                was selected
        """
        channel_id = self._require_channel("send")
        with self.tracer.span(
            "chatprobe.bot.send",
            {ATTR_CHANNEL_ID: channel_id, ATTR_USER_ID: self.user_id or ""},
        ):
            return await self._queue.enqueue(self._transport.post_message, channel_id, text)

    async def expect(self, call: ExpectCall) -> Any:
        """Wait for an event in the current channel matching the call shape."""
        channel_id = self._require_channel("expect")
        return await wait_for(
            self.history,
            call.to_expectation(channel_id),
            own_id=self.user_id,
            timeout=self.timeout,
            tracer=self.tracer,
        )

    async def expect_any(self, call: AnyExpectation) -> Any:
        """Wait for the first of several expectations in the current channel."""
        channel_id = self._require_channel("expect")
        return await expect_any(
            self.history,
            call.to_expectations(channel_id),
            own_id=self.user_id,
            timeout=self.timeout,
            tracer=self.tracer,
        )

    def reset(self) -> None:
        """Forget the received history so the session can be reused."""
        cleared = len(self.history)
        self.history.clear()
        logger.debug("Session history cleared", extra={"cleared": cleared})

    async def disconnect(self) -> None:
        """Stop receiving events from the transport and forget the history."""
        if self._subscribed:
            await self._transport.unsubscribe(self._listener)
            self._subscribed = False
        self.reset()
        logger.info("Bot disconnected", extra={"user_id": self.user_id})

    def __repr__(self) -> str:
        return (
            f"BotSession(user_id={self.user_id!r}, channel_id={self.channel_id!r}, "
            f"events={len(self.history)})"
        )


__all__ = ["BotSession"]
