"""
Waiting for an expected event with a deadline.

A wait goes through these states:

- armed: a listener is attached to the history and the deadline is running
- resolved: an event matched and its check (if any) accepted it
- errored: the check raised, the wait fails with that error
- expired: the deadline passed first, the wait fails with WaitFailure

Whatever the outcome, the listener is detached before the wait settles.

Right after the listener is attached, everything already in the history is
replayed through it in arrival order, so an answer that arrived before the
wait was armed still counts.

Example:
    >>> expectation = Expectation({"type": "message", "text": "hi"})
    >>> event = await wait_for(history, expectation, own_id="U0", timeout=3.0)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from chatprobe.exceptions import InvalidExpectationError, WaitFailure
from chatprobe.expectations import Expectation, Retry
from chatprobe.history import EventHistory
from chatprobe.matching import matches
from chatprobe.observability import (
    ATTR_HISTORY_SIZE,
    ATTR_WAIT_BRANCHES,
    ATTR_WAIT_TIMEOUT,
    NullTracer,
    Tracer,
)
from chatprobe.types import Event

logger = logging.getLogger(__name__)


def _validate(expectation: Any) -> Expectation:
    if not isinstance(expectation, Expectation):
        raise InvalidExpectationError(
            f"Expected an Expectation, got {type(expectation).__name__}"
        )
    if not isinstance(expectation.pattern, Mapping):
        raise InvalidExpectationError(
            f"Invalid pattern in wait_for: expected a mapping, "
            f"got {type(expectation.pattern).__name__}"
        )
    if expectation.check is not None and not callable(expectation.check):
        raise InvalidExpectationError(
            f"Expectation check must be callable, got {type(expectation.check).__name__}"
        )
    return expectation


class _Waiter:
    """One armed wait: its listener, its pending checks and its outcome."""

    def __init__(
        self,
        history: EventHistory,
        expectation: Expectation,
        own_id: str | None,
    ) -> None:
        self._history = history
        self._expectation = expectation
        self._own_id = own_id
        self._armed_at = 0
        self._checks: set[asyncio.Future[Any]] = set()
        self._listener = self._on_event
        self.future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

    def arm(self) -> None:
        self._armed_at = len(self._history)
        self._history.subscribe(self._listener)
        for event in self._history.snapshot():
            if self.future.done():
                break
            self._on_event(event)

    def release(self) -> None:
        self._history.unsubscribe(self._listener)
        for check in list(self._checks):
            check.cancel()
        self._checks.clear()

    def expired(self) -> WaitFailure:
        return WaitFailure(
            self._expectation.pattern,
            received=self._history.snapshot(),
            received_during_wait=self._history.since(self._armed_at),
        )

    def _on_event(self, event: Event) -> None:
        if self.future.done():
            return
        if self._own_id is not None and event.get("user") == self._own_id:
            return
        if not matches(self._expectation.pattern, event):
            return

        check = self._expectation.check
        if check is None:
            self.future.set_result(event)
            return

        try:
            result = check(event)
        except Exception as e:
            self.future.set_exception(e)
            return

        if inspect.isawaitable(result):
            pending = asyncio.ensure_future(result)
            self._checks.add(pending)
            pending.add_done_callback(lambda done: self._on_check_done(done, event))
            return

        self._settle(event, result)

    def _on_check_done(self, done: asyncio.Future[Any], event: Event) -> None:
        self._checks.discard(done)
        if done.cancelled():
            return
        error = done.exception()
        if self.future.done():
            return
        if error is not None:
            self.future.set_exception(error)
        else:
            self._settle(event, done.result())

    def _settle(self, event: Event, result: Any) -> None:
        if isinstance(result, Retry):
            logger.debug(
                "Check vetoed matching event, still waiting",
                extra={"text": event.get("text"), "wanted": result.expectation},
            )
            return
        self.future.set_result(event if result is None else result)


async def wait_for(
    history: EventHistory,
    expectation: Expectation,
    *,
    own_id: str | None,
    timeout: float,
    tracer: Tracer | None = None,
) -> Any:
    """
    Wait until an event in the history satisfies an expectation.

    Events authored by ``own_id`` are never considered. The deadline counts
    from the moment the wait is armed.

    Args:
        history: The bot's event history
        expectation: Pattern and optional check
        own_id: Identity of the bot itself
        timeout: Seconds to wait before giving up
        tracer: Optional tracer for the wait span

    Returns:
        The check's return value if it returned something other than None,
        otherwise the matched event

    Raises:
        InvalidExpectationError: Immediately, if the pattern is not a mapping
        WaitFailure: If nothing matched before the deadline
        Exception: Whatever the check raised
    """
    _validate(expectation)
    tracer = tracer or NullTracer()

    waiter = _Waiter(history, expectation, own_id)
    with tracer.span(
        "chatprobe.wait",
        {
            ATTR_WAIT_TIMEOUT: timeout,
            ATTR_HISTORY_SIZE: len(history),
        },
    ):
        try:
            waiter.arm()
            return await asyncio.wait_for(waiter.future, timeout)
        except TimeoutError:
            # a check may raise TimeoutError itself; only the deadline cancels the future
            if not waiter.future.cancelled():
                raise
            failure = waiter.expired()
            logger.warning(
                "Wait expired without a match",
                extra={
                    "timeout": timeout,
                    "received": len(failure.received),
                    "received_during_wait": len(failure.received_during_wait),
                },
            )
            raise failure from None
        finally:
            waiter.release()


def _merge(groups: Sequence[Sequence[Event]]) -> list[Event]:
    seen: set[int] = set()
    merged: list[Event] = []
    for events in groups:
        for event in events:
            if id(event) not in seen:
                seen.add(id(event))
                merged.append(event)
    return merged


async def expect_any(
    history: EventHistory,
    expectations: Sequence[Expectation],
    *,
    own_id: str | None,
    timeout: float,
    tracer: Tracer | None = None,
) -> Any:
    """
    Race several expectations against the same history.

    Resolves with the first wait that resolves and cancels the others. A
    wait failing with anything other than WaitFailure ends the race with
    that error. When every wait expires, one WaitFailure is raised whose
    histories merge what each wait observed.

    Raises:
        InvalidExpectationError: Immediately, if the list is empty or any
            expectation is malformed
        WaitFailure: If no expectation was met before the deadline
    """
    if not expectations:
        raise InvalidExpectationError("expect_any needs at least one expectation")
    for expectation in expectations:
        _validate(expectation)
    tracer = tracer or NullTracer()

    with tracer.span("chatprobe.expect_any", {ATTR_WAIT_BRANCHES: len(expectations)}):
        tasks = [
            asyncio.ensure_future(
                wait_for(history, expectation, own_id=own_id, timeout=timeout, tracer=tracer)
            )
            for expectation in expectations
        ]
        failures: list[WaitFailure | None] = [None] * len(tasks)
        pending: set[asyncio.Future[Any]] = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                outcomes = {task: task.exception() for task in done}
                for index, task in enumerate(tasks):
                    if task not in outcomes:
                        continue
                    error = outcomes[task]
                    if error is None:
                        return task.result()
                    if not isinstance(error, WaitFailure):
                        raise error
                    failures[index] = error
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    expired = [failure for failure in failures if failure is not None]
    raise WaitFailure(
        [expectation.pattern for expectation in expectations],
        received=_merge([failure.received for failure in expired]),
        received_during_wait=_merge([failure.received_during_wait for failure in expired]),
    )


__all__ = ["wait_for", "expect_any"]
