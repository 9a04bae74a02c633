"""
chatprobe - expectation-based testing for chat bots.

Send a message into a channel, then wait (with a timeout) for the event
stream to produce a message matching a declarative pattern.

Example:
    >>> from chatprobe import BotConfig, ListingDirectory, RateLimitedQueue, create_bot
    >>>
    >>> queue = RateLimitedQueue(rate=1.0)
    >>> queue.start()
    >>> directory = ListingDirectory(api, queue)
    >>>
    >>> bot = create_bot(
    ...     BotConfig(token="xoxb-...", timeout=500),
    ...     transport=transport,
    ...     directory=directory,
    ...     queue=queue,
    ... )
    >>> await bot.im("helpbot").send("help").expect("hi").finish()
"""

from chatprobe.chain import ChatBot, CompletionCallback, create_bot
from chatprobe.config import DEFAULT_TIMEOUT_MS, BotConfig
from chatprobe.directory import (
    Channel,
    DirectChannel,
    Directory,
    DirectoryApi,
    Group,
    ListingDirectory,
    Member,
)
from chatprobe.exceptions import (
    ChannelNotSelectedError,
    ChatProbeError,
    DirectoryLookupError,
    InvalidExpectationError,
    NotConnectedError,
    RateLimiterError,
    WaitFailure,
)
from chatprobe.expectations import (
    RETRY,
    AnyExpectation,
    CallbackOnlyExpectation,
    Expectation,
    FilterExpectation,
    Retry,
    TextExpectation,
    fail,
    parse_expect_any_args,
    parse_expect_args,
)
from chatprobe.history import EventHistory
from chatprobe.matching import matches
from chatprobe.ratelimit import RateLimitedQueue, RateLimiterStats, rate_limited
from chatprobe.session import BotSession
from chatprobe.transport import ChatTransport
from chatprobe.types import Event, freeze_event
from chatprobe.waiting import expect_any, wait_for

__version__ = "0.1.0"

__all__ = [
    # Chain
    "ChatBot",
    "CompletionCallback",
    "create_bot",
    "BotSession",
    # Configuration
    "BotConfig",
    "DEFAULT_TIMEOUT_MS",
    # Collaborators
    "ChatTransport",
    "Directory",
    "DirectoryApi",
    "ListingDirectory",
    "Member",
    "Channel",
    "Group",
    "DirectChannel",
    # Matching and waiting
    "Event",
    "freeze_event",
    "matches",
    "EventHistory",
    "Expectation",
    "TextExpectation",
    "FilterExpectation",
    "CallbackOnlyExpectation",
    "AnyExpectation",
    "parse_expect_args",
    "parse_expect_any_args",
    "Retry",
    "RETRY",
    "fail",
    "wait_for",
    "expect_any",
    # Rate limiting
    "RateLimitedQueue",
    "RateLimiterStats",
    "rate_limited",
    # Exceptions
    "ChatProbeError",
    "InvalidExpectationError",
    "ChannelNotSelectedError",
    "NotConnectedError",
    "DirectoryLookupError",
    "RateLimiterError",
    "WaitFailure",
]
