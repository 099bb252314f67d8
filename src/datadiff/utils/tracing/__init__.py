"""
OpenTelemetry tracing for comparison runs.

Spans are always created; they are only exported when initialize_tracing()
was called with an OTLP endpoint (or OTEL_EXPORTER_OTLP_ENDPOINT is set) or
console export is enabled. Without that the OpenTelemetry API hands out
non-recording spans and tracing costs next to nothing.
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "add_span_attributes",
    "add_span_event",
]
