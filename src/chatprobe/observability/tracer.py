"""
Tracers used by the rate limiter, the wait engine and bot sessions.

Every component takes a ``tracer`` argument typed as the Tracer protocol
below and only ever opens spans through ``tracer.span(name, attributes)``.
Which implementation it gets decides what happens to those spans:

- NullTracer: nothing, the default when tracing is off or unavailable
- OpenTelemetryTracer: spans go to the configured TracerProvider
- MockTracer: spans are recorded in memory for assertions in tests

Example:
    >>> queue = RateLimitedQueue(rate=1.0, tracer=MockTracer())
    >>> session = BotSession(config, ..., tracer=create_tracer(__name__))
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from contextlib import AbstractContextManager
from typing import Any, Protocol, runtime_checkable

from chatprobe.observability.tracing import OTEL_AVAILABLE, get_tracer

Attributes = dict[str, Any]


@runtime_checkable
class Tracer(Protocol):
    """What chatprobe components need from a tracer."""

    def span(self, name: str, attributes: Attributes | None = None) -> AbstractContextManager[Any]:
        """Open a span around the body of a ``with`` block."""
        ...

    @property
    def enabled(self) -> bool:
        """Whether spans are actually kept anywhere."""
        ...


class NullTracer:
    """Tracer that drops every span."""

    @contextlib.contextmanager
    def span(self, name: str, attributes: Attributes | None = None) -> Iterator[None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Tracer backed by OpenTelemetry.

    Args:
        tracer_name: Instrumentation scope, usually the module's ``__name__``
        provider: TracerProvider to use instead of the global one

    Raises:
        ImportError: If OpenTelemetry is not installed
    """

    def __init__(self, tracer_name: str, provider: Any | None = None) -> None:
        if not OTEL_AVAILABLE:
            raise ImportError(
                "OpenTelemetry is not installed. Install it with: pip install chatprobe[telemetry]"
            )
        self._tracer = get_tracer(tracer_name, provider)

    def span(self, name: str, attributes: Attributes | None = None) -> AbstractContextManager[Any]:
        return self._tracer.start_as_current_span(name, attributes=attributes or {})

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    Tracer that remembers every span it opened, in order.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("chatprobe.wait", {"chatprobe.wait.timeout": 0.5}):
        ...     pass
        >>> tracer.span_names
        ['chatprobe.wait']
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, Attributes | None]] = []

    @contextlib.contextmanager
    def span(self, name: str, attributes: Attributes | None = None) -> Iterator[None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        self.spans.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Pick the tracer a component should use.

    Returns an OpenTelemetryTracer when tracing is requested and
    OpenTelemetry is importable, a NullTracer otherwise.
    """
    if enable_tracing and OTEL_AVAILABLE:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
]
