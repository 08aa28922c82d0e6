"""All string enums for jidtrace."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class StringType(StrEnum):
    """Representation of JID segments."""

    STR = "str"
    BYTES = "bytes"


@unique
class TraceDirection(StrEnum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


@unique
class StreamEventKind(StrEnum):
    """What an inbound stream delivery carries."""

    STREAM_START = "stream_start"
    STREAM_ELEMENT = "stream_element"
    STREAM_END = "stream_end"


@unique
class ResolutionStatus(StrEnum):
    IDENTIFIED = "identified"
    CANDIDATES = "candidates"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"


@unique
class TraceStatus(StrEnum):
    """Outcome of an operator request."""

    STARTED = "started"
    FOUND = "found"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    MALFORMED_JID = "malformed_jid"
    TRACER_ALREADY_RUNNING = "tracer_already_running"


@unique
class ConnectionState(StrEnum):
    """Per-connection state of a correlation buffer."""

    WATCHING = "watching"
    CORRELATED = "correlated"
    DISCARDING = "discarding"


@unique
class TraceFlag(StrEnum):
    """Kind of process activity an attachment traces.

    Values follow the server runtime's tracer: ``m`` messages, ``c`` calls,
    ``p`` process events, ``s``/``r`` sends and receives only; the ``so*``
    flags extend tracing to processes spawned or linked by the traced one.
    """

    SEND = "s"
    RECEIVE = "r"
    MESSAGES = "m"
    CALLS = "c"
    PROCS = "p"
    SET_ON_SPAWN = "sos"
    SET_ON_LINK = "sol"
    SET_ON_FIRST_SPAWN = "sofs"
    SET_ON_FIRST_LINK = "sofl"
    ALL = "all"
    CLEAR = "clear"
