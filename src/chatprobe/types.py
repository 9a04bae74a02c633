"""
Shared type aliases for chatprobe.

Events coming off a chat stream are plain mappings. They are frozen on
receipt so that a recorded event can be replayed to any number of waits
without one of them changing what the next one sees.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Mapping
from types import MappingProxyType
from typing import Any, TypeAlias

Event: TypeAlias = Mapping[str, Any]
"""One inbound item from the chat stream."""

Pattern: TypeAlias = "str | re.Pattern[str] | Mapping[str, Pattern] | Any"
"""A literal, a compiled regular expression or a mapping of field patterns."""

EventListener: TypeAlias = Callable[[Event], None]
"""Single-event callback attached to an event history."""

CheckResult: TypeAlias = "Any | Awaitable[Any]"

CheckCallback: TypeAlias = Callable[[Event], CheckResult]
"""Custom check run against a matched event."""


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return [_freeze(item) for item in value]
    return value


def freeze_event(event: Mapping[str, Any]) -> Event:
    """
    Return a read-only copy of an event.

    Nested mappings become read-only too; lists are copied.

    Args:
        event: The raw event received from the transport

    Returns:
        A read-only mapping with the same content
    """
    return _freeze(event)


__all__ = [
    "Event",
    "Pattern",
    "EventListener",
    "CheckCallback",
    "CheckResult",
    "freeze_event",
]
