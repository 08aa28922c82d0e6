"""jidtrace - trace the traffic of one XMPP session on a live server."""

from jidtrace._version import __version__
from jidtrace.config import TraceConfig
from jidtrace.errors import (
    AmbiguousSessionError,
    InvalidFilterSpecError,
    JidTraceError,
    MalformedJidError,
    SessionNotFoundError,
    TracerAlreadyRunningError,
)
from jidtrace.filters import (
    BUILTIN_PREDICATES,
    AllFilter,
    AnyFilter,
    FilterExpression,
    FilterSpec,
    LeafFilter,
    Predicate,
    PredicateCatalog,
    all_of,
    any_of,
    default_catalog,
    evaluate,
    from_spec,
    is_filter,
    leaf,
    stream,
    to_spec,
)
from jidtrace.jid.parser import parse_jid, split_jid
from jidtrace.models.enums import (
    ConnectionState,
    ResolutionStatus,
    StreamEventKind,
    StringType,
    TraceDirection,
    TraceFlag,
    TraceStatus,
)
from jidtrace.models.jid import Jid
from jidtrace.models.session import (
    InspectResult,
    ProcessState,
    ResolutionResult,
    Session,
    SessionCandidate,
)
from jidtrace.models.trace import (
    END_OF_TRACE,
    ElementSent,
    EndOfTrace,
    OpaqueTrace,
    RouteReceived,
    RouteSent,
    StanzaReceived,
    TextSent,
    TraceEvent,
    is_end_of_trace,
)
from jidtrace.models.xml import XmlCData, XmlElement
from jidtrace.session.directory import InMemorySessionDirectory, SessionDirectory
from jidtrace.session.query import (
    ExactSessionQuery,
    PartialSessionQuery,
    SessionQuery,
    build_query,
)
from jidtrace.session.resolver import resolve
from jidtrace.tracing import (
    CorrelationBuffer,
    MockTraceAttachment,
    MockTraceCall,
    TraceAttachment,
    TraceDeliver,
    TraceSession,
    TraceSink,
    TraceStartResult,
    Tracer,
    extract_jids,
    log_sink,
)

__all__ = [
    "AllFilter",
    "AmbiguousSessionError",
    "AnyFilter",
    "BUILTIN_PREDICATES",
    "ConnectionState",
    "CorrelationBuffer",
    "END_OF_TRACE",
    "ElementSent",
    "EndOfTrace",
    "ExactSessionQuery",
    "FilterExpression",
    "FilterSpec",
    "InMemorySessionDirectory",
    "InspectResult",
    "InvalidFilterSpecError",
    "Jid",
    "JidTraceError",
    "LeafFilter",
    "MalformedJidError",
    "MockTraceAttachment",
    "MockTraceCall",
    "OpaqueTrace",
    "PartialSessionQuery",
    "Predicate",
    "PredicateCatalog",
    "ProcessState",
    "ResolutionResult",
    "ResolutionStatus",
    "RouteReceived",
    "RouteSent",
    "Session",
    "SessionCandidate",
    "SessionDirectory",
    "SessionNotFoundError",
    "SessionQuery",
    "StanzaReceived",
    "StreamEventKind",
    "StringType",
    "TextSent",
    "TraceAttachment",
    "TraceConfig",
    "TraceDeliver",
    "TraceDirection",
    "TraceEvent",
    "TraceFlag",
    "TraceSession",
    "TraceSink",
    "TraceStartResult",
    "TraceStatus",
    "Tracer",
    "TracerAlreadyRunningError",
    "XmlCData",
    "XmlElement",
    "__version__",
    "all_of",
    "any_of",
    "build_query",
    "default_catalog",
    "evaluate",
    "extract_jids",
    "from_spec",
    "is_filter",
    "leaf",
    "log_sink",
    "parse_jid",
    "resolve",
    "split_jid",
    "stream",
    "to_spec",
]
