"""
Per-bot event history with live listener fan-out.

Every event a bot receives is appended to its history and handed to the
currently attached listeners. The history is what lets a wait that is armed
late still see events that arrived before it.

Example:
    >>> history = EventHistory()
    >>> history.subscribe(lambda event: print(event["text"]))
    >>> _ = history.record({"type": "message", "text": "hi"})
    hi
    >>> len(history.snapshot())
    1
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from chatprobe.types import Event, EventListener, freeze_event

logger = logging.getLogger(__name__)


class EventHistory:
    """
    Ordered append-only event log plus a synchronous broadcast channel.

    Listeners are plain single-argument callables. They are notified in
    attachment order, inside record(), before record() returns. A listener
    may unsubscribe itself (or others) while being notified; the current
    fan-out still reaches every listener that was attached when it started.
    A failing listener is logged and does not keep the event from the rest.
    """

    def __init__(self) -> None:
        self._events: list[Event] = []
        self._listeners: list[EventListener] = []

    def record(self, event: Mapping[str, Any]) -> Event:
        """
        Append an event and notify attached listeners.

        Args:
            event: The raw event from the transport

        Returns:
            The frozen event as stored in the history
        """
        frozen = freeze_event(event)
        self._events.append(frozen)

        for listener in list(self._listeners):
            try:
                listener(frozen)
            except Exception as e:
                logger.error(
                    f"Event listener {listener!r} failed: {e}",
                    exc_info=True,
                    extra={"event_type": frozen.get("type"), "error": str(e)},
                )
        return frozen

    def snapshot(self) -> list[Event]:
        """Return a copy of the recorded events in arrival order."""
        return list(self._events)

    def since(self, position: int) -> list[Event]:
        """Return the events recorded at or after the given position."""
        return self._events[position:]

    def subscribe(self, listener: EventListener) -> None:
        """Attach a listener for live events."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> bool:
        """
        Detach a listener.

        Detaching a listener that is not attached is a no-op.

        Returns:
            True if the listener was attached and has been removed
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def clear(self) -> None:
        """Forget every recorded event. Attached listeners stay attached."""
        self._events.clear()

    @property
    def listener_count(self) -> int:
        """Number of attached listeners."""
        return len(self._listeners)

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"EventHistory(events={len(self._events)}, listeners={len(self._listeners)})"


__all__ = ["EventHistory"]
