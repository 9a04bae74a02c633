"""
Detection of the optional OpenTelemetry dependency.

Installing ``chatprobe[telemetry]`` pulls in OpenTelemetry. Without it the
package still imports and every tracer degrades to a no-op.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from opentelemetry.trace import Tracer

try:
    from opentelemetry import trace

    OTEL_AVAILABLE = True
except ImportError:
    trace = None  # type: ignore[assignment]
    OTEL_AVAILABLE = False


def get_tracer(name: str, provider: Any | None = None) -> Tracer | None:
    """
    Return an OpenTelemetry tracer named ``name``, or None without OpenTelemetry.

    ``provider`` selects a specific TracerProvider; by default the globally
    configured one is used.
    """
    if not OTEL_AVAILABLE:
        return None
    return trace.get_tracer(name, tracer_provider=provider)


__all__ = ["OTEL_AVAILABLE", "get_tracer"]
