"""
Fluent chaining of bot steps into one ordered pipeline.

Every step method on ChatBot returns the bot itself, so a whole test case
reads as one expression. Steps run strictly one after the other: each
waits for the previous one to finish, so ``expect`` never starts before the
``send`` declared ahead of it has completed. The first failing step makes
every later step fail with the same error; ``finish`` reports that error
and cleans up either way.

Example:
    >>> queue = RateLimitedQueue(rate=1.0)
    >>> queue.start()
    >>>
    >>> async def test_greeting():
    ...     bot = create_bot(
    ...         BotConfig(token="xoxb-...", timeout=500),
    ...         transport=transport,
    ...         directory=directory,
    ...         queue=queue,
    ...     )
    ...     await bot.im("helpbot").send("help").expect("hi").finish()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from chatprobe.config import BotConfig
from chatprobe.directory import Directory
from chatprobe.expectations import fail, parse_expect_any_args, parse_expect_args
from chatprobe.observability import ATTR_STEP_NAME, Tracer
from chatprobe.ratelimit import RateLimitedQueue
from chatprobe.session import BotSession
from chatprobe.transport import ChatTransport

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[BaseException | None], None]


def _settled() -> asyncio.Future[Any]:
    future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
    future.set_result(None)
    return future


def _mark_retrieved(future: asyncio.Future[Any]) -> None:
    if not future.cancelled():
        future.exception()


class ChatBot:
    """
    Chainable handle over a BotSession.

    ChatBot must be used from inside a running event loop: every step call
    schedules its continuation right away.

    Attributes:
        session: The session the steps act on
    """

    fail = staticmethod(fail)

    def __init__(self, session: BotSession) -> None:
        self.session = session
        self._pipeline: asyncio.Future[Any] = _settled()

    def _then(self, name: str, step: Callable[..., Awaitable[Any]], *args: Any) -> ChatBot:
        previous = self._pipeline
        tracer = self.session.tracer

        async def run() -> Any:
            await previous
            logger.debug(f"Running step {name}", extra={"step": name})
            with tracer.span("chatprobe.bot.step", {ATTR_STEP_NAME: name}):
                return await step(*args)

        self._pipeline = asyncio.ensure_future(run())
        return self

    def connect(self) -> ChatBot:
        """Authenticate and subscribe. create_bot() chains this already."""
        return self._then("connect", self.session.connect)

    def im(self, username: str) -> ChatBot:
        """Talk to a user in your direct-message channel."""
        return self._then("im", self.session.im, username)

    def channel(self, name: str) -> ChatBot:
        """Talk in a public channel."""
        return self._then("channel", self.session.channel, name)

    def group(self, name: str) -> ChatBot:
        """Talk in a private group."""
        return self._then("group", self.session.group, name)

    def send(self, text: str) -> ChatBot:
        """Post a message in the current channel."""
        return self._then("send", self.session.send, text)

    def expect(self, first: Any, second: Any = None, third: Any = None) -> ChatBot:
        """
        Wait for a matching event in the current channel.

        Malformed arguments raise InvalidExpectationError right here, not
        when the step's turn comes.

        Examples:
            >>> bot.expect("hi")
            >>> bot.expect(re.compile("^Usage"), {"subtype": "bot_message"})
            >>> bot.expect({"type": "reaction_added"}, check)
            >>> bot.expect(check)
        """
        call = parse_expect_args(first, second, third)
        return self._then("expect", self.session.expect, call)

    def expect_any(self, items: Any, check: Any = None) -> ChatBot:
        """Wait for whichever of several texts or patterns shows up first."""
        call = parse_expect_any_args(items, check)
        return self._then("expect_any", self.session.expect_any, call)

    def finish(self, callback: CompletionCallback | None = None) -> asyncio.Future[None]:
        """
        End the chain.

        The returned future resolves with None once every step succeeded, or
        fails with the first step's error. If a callback is given it is
        called once with that error, or None on success. Afterwards the
        session history is cleared and the handle can start a new chain.

        Args:
            callback: Optional completion callback for callback-style runners

        Returns:
            Future settling with the outcome of the chain
        """
        outcome = self._pipeline
        result: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        if callback is not None:
            result.add_done_callback(_mark_retrieved)

        async def settle() -> None:
            error: BaseException | None = None
            try:
                await outcome
            except (Exception, asyncio.CancelledError) as e:
                error = e
            finally:
                self.session.reset()

            if error is None:
                logger.debug("Chain finished")
            else:
                logger.debug(f"Chain failed: {error}", extra={"error": str(error)})

            if callback is not None:
                try:
                    callback(error)
                except Exception as e:
                    if error is not None:
                        e.__context__ = error
                    error = e

            if error is None:
                result.set_result(None)
            elif isinstance(error, asyncio.CancelledError):
                result.cancel()
            else:
                result.set_exception(error)

        self._pipeline = asyncio.ensure_future(settle())
        return result

    async def close(self) -> None:
        """Finish the chain, then disconnect from the transport."""
        try:
            await self.finish()
        finally:
            await self.session.disconnect()

    def __repr__(self) -> str:
        return f"ChatBot({self.session!r})"


def create_bot(
    config: BotConfig,
    *,
    transport: ChatTransport,
    directory: Directory,
    queue: RateLimitedQueue,
    tracer: Tracer | None = None,
    enable_tracing: bool = True,
) -> ChatBot:
    """
    Create a bot and chain its connect step.

    Must be called from inside a running event loop.

    Args:
        config: Token and timeout for the bot
        transport: Chat transport delivering events and posting messages
        directory: Resolves user, channel and group names
        queue: The process-wide rate limiter, already started
        tracer: Optional custom Tracer instance
        enable_tracing: If True and OpenTelemetry is available, emit traces

    Returns:
        A ChatBot whose pipeline starts with connect
    """
    session = BotSession(
        config,
        transport=transport,
        directory=directory,
        queue=queue,
        tracer=tracer,
        enable_tracing=enable_tracing,
    )
    return ChatBot(session).connect()


__all__ = ["ChatBot", "CompletionCallback", "create_bot"]
