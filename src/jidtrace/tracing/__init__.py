"""Tracing attachment, correlation and operator API."""

from jidtrace.tracing.base import TraceAttachment, TraceDeliver, TraceSink, log_sink
from jidtrace.tracing.correlation import CorrelationBuffer, extract_jids
from jidtrace.tracing.mock import MockTraceAttachment, MockTraceCall
from jidtrace.tracing.session import TraceSession, TraceStartResult
from jidtrace.tracing.tracer import Tracer

__all__ = [
    "CorrelationBuffer",
    "MockTraceAttachment",
    "MockTraceCall",
    "TraceAttachment",
    "TraceDeliver",
    "TraceSession",
    "TraceSink",
    "TraceStartResult",
    "Tracer",
    "extract_jids",
    "log_sink",
]
