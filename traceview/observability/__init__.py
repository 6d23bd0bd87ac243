"""Observability helpers."""

from traceview.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_decode_failure,
    record_line_decoded,
    record_log_load,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_decode_failure",
    "record_line_decoded",
    "record_log_load",
]
