"""Library exceptions for the chatprobe package."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any


class ChatProbeError(Exception):
    """Base exception for chatprobe library."""

    pass


class InvalidExpectationError(ChatProbeError, TypeError):
    """
    Raised when an expectation argument has a shape that cannot be waited on.

    This is a programmer error: it is raised as soon as the malformed
    argument is seen and is never deferred behind a timeout.
    """

    pass


class ChannelNotSelectedError(ChatProbeError):
    """Raised when a step needs a channel but none was selected yet."""

    def __init__(self, step: str) -> None:
        self.step = step
        super().__init__(
            f"Cannot {step} before a channel is selected. "
            "Select one first with im(), channel() or group()."
        )


class NotConnectedError(ChatProbeError):
    """Raised when a step needs the bot identity before connect() completed."""

    def __init__(self, step: str) -> None:
        self.step = step
        super().__init__(f"Cannot {step} before the bot is connected.")


class DirectoryLookupError(ChatProbeError):
    """Raised when the directory has no entry for a requested name."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Could not find {kind}: {name}")


class RateLimiterError(ChatProbeError):
    """Raised when the rate limiter is misused or was stopped."""

    pass


def _describe(expectation: Any) -> str:
    """Render the text part of an expectation for error messages."""
    if isinstance(expectation, Mapping):
        text = expectation.get("text")
        if text is None:
            return ""
        return getattr(text, "pattern", str(text))
    if isinstance(expectation, Sequence) and not isinstance(expectation, str):
        return json.dumps([_describe(item) or dict(item) for item in expectation], default=str)
    return str(expectation)


class WaitFailure(ChatProbeError):
    """
    Raised when an expected event was not observed before the timeout.

    Attributes:
        expectation: The unmet pattern, or a list of patterns for expect_any
        received: Every event in the session history when the wait expired
        received_during_wait: Events recorded between arming and expiry
    """

    def __init__(
        self,
        expectation: Any,
        received: list[Mapping[str, Any]],
        received_during_wait: list[Mapping[str, Any]] | None = None,
    ) -> None:
        self.expectation = expectation
        self.received = list(received)
        self.received_during_wait = list(
            received if received_during_wait is None else received_during_wait
        )
        super().__init__(self._render())

    @property
    def received_texts(self) -> list[Any]:
        """Text of each received event, None for events without one."""
        return [event.get("text") for event in self.received]

    def _render(self) -> str:
        described = _describe(self.expectation)
        if isinstance(self.expectation, list):
            message = f"Expected messages {described} were not received."
        elif described:
            message = f'Expected message "{described}" was not received.'
        else:
            message = "Expected message was not received."
        if self.received:
            message += " Instead, received following messages:\n" + json.dumps(
                self.received_texts, default=str
            )
        else:
            message += " Did not receive any messages at all."
        return message


__all__ = [
    "ChatProbeError",
    "InvalidExpectationError",
    "ChannelNotSelectedError",
    "NotConnectedError",
    "DirectoryLookupError",
    "RateLimiterError",
    "WaitFailure",
]
