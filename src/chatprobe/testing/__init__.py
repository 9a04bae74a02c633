"""
Test utilities for chatprobe.

Components:
    FakeChatService: In-memory chat platform implementing the transport and
        directory contracts
    InMemoryChatHarness: Fake service, fast rate limiter and directory wired
        together

Note:
    This module is intended for test code only.
"""

from chatprobe.testing.fake import FakeChatService, PostedMessage
from chatprobe.testing.harness import InMemoryChatHarness

__all__ = [
    "FakeChatService",
    "PostedMessage",
    "InMemoryChatHarness",
]
