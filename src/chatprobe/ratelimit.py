"""
Rate limiting for outbound chat service calls.

Chat platforms cap how many API requests a client may make per second.
Every outbound call made by any bot in the process goes through one
RateLimitedQueue, which admits operations one at a time, in submission
order, with a minimum spacing between consecutive admissions.

This module provides:
- RateLimiterStats: Statistics for monitoring the queue
- RateLimitedQueue: FIFO admission gate with a single consumer task
- rate_limited: Decorator producing a rate-limited version of a function

Example:
    >>> queue = RateLimitedQueue(rate=1.0)
    >>> queue.start()
    >>> result = await queue.enqueue(client.post_message, "C1", "hello")
    >>> await queue.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

from chatprobe.exceptions import RateLimiterError
from chatprobe.observability import (
    ATTR_OPERATION_NAME,
    ATTR_QUEUE_PENDING,
    ATTR_QUEUE_WAIT_MS,
    Tracer,
    create_tracer,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

DEFAULT_RATE = 1.0


@dataclass
class RateLimiterStats:
    """
    Statistics for rate limiter monitoring.

    Attributes:
        admitted: Operations that were admitted and ran
        failed: Admitted operations that raised
        skipped: Operations dropped because their caller cancelled first
        pending: Operations still waiting for admission
        total_wait_seconds: Cumulative time operations spent queued
    """

    admitted: int = 0
    failed: int = 0
    skipped: int = 0
    pending: int = 0
    total_wait_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "admitted": self.admitted,
            "failed": self.failed,
            "skipped": self.skipped,
            "pending": self.pending,
            "total_wait_seconds": self.total_wait_seconds,
        }


@dataclass
class _Job:
    operation: Callable[[], Any]
    future: asyncio.Future[Any] = field(repr=False)
    name: str
    enqueued_at: float


def _operation_name(operation: Any) -> str:
    target = operation.func if isinstance(operation, functools.partial) else operation
    return str(getattr(target, "__qualname__", None) or getattr(target, "__name__", repr(target)))


class RateLimitedQueue:
    """
    FIFO admission gate bounding outbound calls to a fixed rate.

    A single consumer task takes operations off the queue in submission
    order. Each admitted operation runs to completion before the next one
    is considered, and consecutive admissions are at least ``1 / rate``
    seconds apart no matter how fast the operations finish.

    The queue is meant to be constructed once per process, started once,
    and handed to every bot so that tests running several bots stay under
    the service's request ceiling. Tests can hand in a faster queue.

    Failure of an operation is delivered to its own caller only; the
    consumer moves on to the next operation.

    Example:
        >>> queue = RateLimitedQueue(rate=2.0)  # one admission per 0.5s
        >>> queue.start()
        >>> first = queue.enqueue(api.list_members)
        >>> second = queue.enqueue(api.list_channels)
        >>> members, channels = await asyncio.gather(first, second)

    Attributes:
        rate: Admissions per second
        interval: Minimum seconds between two admissions
    """

    def __init__(
        self,
        rate: float = DEFAULT_RATE,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the queue. Nothing runs until start() is called.

        Args:
            rate: Admitted operations per second (default 1)
            tracer: Optional custom Tracer instance
            enable_tracing: If True and OpenTelemetry is available, emit traces.
                Ignored if tracer is explicitly provided.

        Raises:
            ValueError: If rate is not positive
        """
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")

        self.rate = rate
        self.interval = 1.0 / rate

        self._queue: asyncio.Queue[_Job] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._stopped = False
        self._last_admission: float | None = None
        self._stats = RateLimiterStats()

        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def is_running(self) -> bool:
        """True while the consumer task is alive."""
        return self._worker is not None and not self._worker.done()

    @property
    def stats(self) -> RateLimiterStats:
        """Snapshot of the current statistics."""
        return RateLimiterStats(
            admitted=self._stats.admitted,
            failed=self._stats.failed,
            skipped=self._stats.skipped,
            pending=self._queue.qsize(),
            total_wait_seconds=self._stats.total_wait_seconds,
        )

    def start(self) -> None:
        """
        Start the consumer task on the running event loop.

        Raises:
            RateLimiterError: If the queue was already started
            RuntimeError: If called without a running event loop
        """
        if self._worker is not None:
            raise RateLimiterError("Rate limiter was already started")

        loop = asyncio.get_running_loop()
        self._worker = loop.create_task(self._run(), name="chatprobe-rate-limiter")
        logger.info(
            "Rate limiter started",
            extra={"rate": self.rate, "interval": self.interval},
        )

    async def stop(self) -> None:
        """
        Stop the consumer and fail every operation still waiting.

        Operations that were never admitted get a RateLimiterError. After
        stop() the queue rejects new operations.
        """
        self._stopped = True
        if self._worker is not None:
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker

        abandoned = 0
        while not self._queue.empty():
            job = self._queue.get_nowait()
            if not job.future.done():
                job.future.set_exception(RateLimiterError("Rate limiter was stopped"))
                abandoned += 1

        logger.info(
            "Rate limiter stopped",
            extra={"abandoned": abandoned, "admitted": self._stats.admitted},
        )

    def enqueue(
        self,
        operation: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> asyncio.Future[Any]:
        """
        Submit an operation for admission.

        The operation may be a plain function or a coroutine function; it is
        called with the given arguments only once it is admitted.

        Args:
            operation: Callable to run once admitted
            *args: Positional arguments for the operation
            **kwargs: Keyword arguments for the operation

        Returns:
            Future resolving to the operation's result, or failing with its error

        Raises:
            RateLimiterError: If the queue was stopped
        """
        if self._stopped:
            raise RateLimiterError("Rate limiter was stopped")

        loop = asyncio.get_running_loop()
        bound = functools.partial(operation, *args, **kwargs) if args or kwargs else operation
        job = _Job(
            operation=bound,
            future=loop.create_future(),
            name=_operation_name(operation),
            enqueued_at=loop.time(),
        )
        self._queue.put_nowait(job)

        logger.debug(
            f"Queued {job.name}",
            extra={"operation": job.name, "pending": self._queue.qsize()},
        )
        return job.future

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job.future.done():
                    self._stats.skipped += 1
                    continue
                await self._wait_for_slot()
                if job.future.done():
                    self._stats.skipped += 1
                    continue
                await self._admit(job)
            except asyncio.CancelledError:
                if not job.future.done():
                    job.future.set_exception(RateLimiterError("Rate limiter was stopped"))
                raise
            finally:
                self._queue.task_done()

    async def _wait_for_slot(self) -> None:
        loop = asyncio.get_running_loop()
        if self._last_admission is not None:
            delay = self._last_admission + self.interval - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

    async def _admit(self, job: _Job) -> None:
        loop = asyncio.get_running_loop()
        self._last_admission = loop.time()
        waited = loop.time() - job.enqueued_at
        self._stats.admitted += 1
        self._stats.total_wait_seconds += waited

        with self._tracer.span(
            "chatprobe.rate_limiter.admit",
            {
                ATTR_OPERATION_NAME: job.name,
                ATTR_QUEUE_WAIT_MS: waited * 1000,
                ATTR_QUEUE_PENDING: self._queue.qsize(),
            },
        ):
            try:
                result = job.operation()
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                self._stats.failed += 1
                logger.debug(
                    f"Operation {job.name} failed: {e}",
                    extra={"operation": job.name, "error": str(e)},
                )
                if not job.future.done():
                    job.future.set_exception(e)
            else:
                if not job.future.done():
                    job.future.set_result(result)


def rate_limited(
    queue: RateLimitedQueue,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """
    Decorator routing every call of an async function through a queue.

    Args:
        queue: The queue that admits the calls

    Returns:
        Decorator producing the rate-limited function

    Example:
        >>> @rate_limited(queue)
        ... async def post(channel: str, text: str) -> dict:
        ...     return await client.post(channel, text)
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            return await queue.enqueue(func, *args, **kwargs)  # type: ignore[no-any-return]

        return wrapper

    return decorator


__all__ = [
    "DEFAULT_RATE",
    "RateLimiterStats",
    "RateLimitedQueue",
    "rate_limited",
]
