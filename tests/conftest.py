"""
Shared pytest fixtures for the chatprobe tests.

This module provides:
- Event fixtures (message_factory, sample_message)
- History fixtures (history)
- Infrastructure fixtures (service, queue, directory, harness)

Async fixtures use a fast rate limiter so tests do not wait a second
between outbound calls; tests that exercise the spacing build their own.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio

from chatprobe.directory import ListingDirectory
from chatprobe.history import EventHistory
from chatprobe.ratelimit import RateLimitedQueue
from chatprobe.testing import FakeChatService, InMemoryChatHarness

FAST_RATE = 1000.0


# =============================================================================
# Event Fixtures
# =============================================================================


def make_message(
    text: str,
    *,
    channel: str = "C1",
    user: str = "UOTHER",
    **fields: Any,
) -> dict[str, Any]:
    """Build a message event the way a chat stream delivers it."""
    return {"type": "message", "channel": channel, "user": user, "text": text, **fields}


@pytest.fixture
def message_factory() -> Callable[..., dict[str, Any]]:
    """
    Factory fixture for message events.

    Usage:
        def test_something(message_factory):
            event = message_factory("hi", channel="D1")
    """
    return make_message


@pytest.fixture
def sample_message() -> dict[str, Any]:
    """A message from another user in channel C1."""
    return make_message("ok thanks")


@pytest.fixture
def history() -> EventHistory:
    """A fresh, empty event history."""
    return EventHistory()


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture
def service() -> FakeChatService:
    """Fake chat service with one user, one DM channel, a channel and a group."""
    fake = FakeChatService(bot_user_id="UBOT")
    fake.add_member("UBOT", "probe")
    fake.add_member("U1", "alice")
    fake.add_direct_channel("D1", user="U1")
    fake.add_channel("C1", "general")
    fake.add_group("G1", "secret")
    return fake


@pytest_asyncio.fixture
async def queue() -> AsyncGenerator[RateLimitedQueue, None]:
    """Started fast rate limiter, stopped after the test."""
    limiter = RateLimitedQueue(rate=FAST_RATE, enable_tracing=False)
    limiter.start()
    yield limiter
    await limiter.stop()


@pytest.fixture
def directory(service: FakeChatService, queue: RateLimitedQueue) -> ListingDirectory:
    """Listing directory over the fake service."""
    return ListingDirectory(service, queue)


@pytest_asyncio.fixture
async def harness() -> AsyncGenerator[InMemoryChatHarness, None]:
    """Started in-memory harness with the same directory content as ``service``."""
    h = InMemoryChatHarness(rate=FAST_RATE)
    h.service.add_member("U1", "alice")
    h.service.add_direct_channel("D1", user="U1")
    h.service.add_channel("C1", "general")
    h.service.add_group("G1", "secret")
    h.start()
    yield h
    await h.stop()
