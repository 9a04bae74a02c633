"""
Observability utilities for chatprobe.

Tracing is optional: when OpenTelemetry is not installed every component
falls back to a NullTracer and runs unchanged.

Example:
    >>> from chatprobe.observability import create_tracer, MockTracer
    >>>
    >>> tracer = create_tracer(__name__, enable_tracing=True)
    >>> queue = RateLimitedQueue(rate=1.0, tracer=MockTracer())
"""

from chatprobe.observability.attributes import (
    ATTR_CHANNEL_ID,
    ATTR_HISTORY_SIZE,
    ATTR_OPERATION_NAME,
    ATTR_QUEUE_PENDING,
    ATTR_QUEUE_WAIT_MS,
    ATTR_STEP_NAME,
    ATTR_USER_ID,
    ATTR_WAIT_BRANCHES,
    ATTR_WAIT_TIMEOUT,
)
from chatprobe.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)
from chatprobe.observability.tracing import OTEL_AVAILABLE, get_tracer

__all__ = [
    "OTEL_AVAILABLE",
    "get_tracer",
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    "ATTR_CHANNEL_ID",
    "ATTR_USER_ID",
    "ATTR_STEP_NAME",
    "ATTR_WAIT_TIMEOUT",
    "ATTR_WAIT_BRANCHES",
    "ATTR_HISTORY_SIZE",
    "ATTR_OPERATION_NAME",
    "ATTR_QUEUE_WAIT_MS",
    "ATTR_QUEUE_PENDING",
]
