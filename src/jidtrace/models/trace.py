"""Trace event models observed on a traced connection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from jidtrace.models.enums import StreamEventKind, TraceDirection
from jidtrace.models.jid import Jid
from jidtrace.models.xml import XmlElement

XML_PROLOGUE = "<?xml version="
STREAM_CLOSE = "</stream:stream>"


@dataclass(frozen=True)
class StanzaReceived:
    """Inbound delivery from the XML stream parser to the connection.

    Attributes:
        handle: Connection that received the delivery.
        kind: Stream start, a complete stanza, or stream end.
        element: The parsed stanza for ``STREAM_ELEMENT`` deliveries.
        attrs: Stream header attributes for ``STREAM_START`` deliveries.
    """

    handle: str
    kind: StreamEventKind
    element: XmlElement | None = None
    attrs: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TextSent:
    """Outbound call writing raw text to the client socket."""

    handle: str
    text: str | bytes
    state: Any = None

    @property
    def decoded(self) -> str:
        if isinstance(self.text, bytes):
            return self.text.decode("utf-8", errors="replace")
        return self.text


@dataclass(frozen=True)
class ElementSent:
    """Outbound call serialising a stanza to the client."""

    handle: str
    element: XmlElement
    state: Any = None


@dataclass(frozen=True)
class RouteSent:
    """Routing hand-off from this connection to another destination."""

    handle: str
    from_jid: Jid
    to_jid: Jid
    packet: XmlElement
    to_handle: str | None = None


@dataclass(frozen=True)
class RouteReceived:
    """Routing hand-off delivered to this connection."""

    handle: str
    from_jid: Jid
    to_jid: Jid
    packet: XmlElement


@dataclass(frozen=True)
class OpaqueTrace:
    """Any other traced activity; only the ``raw`` predicate accepts it."""

    handle: str
    direction: TraceDirection
    payload: Any = None


@dataclass(frozen=True)
class EndOfTrace:
    """Terminal sentinel of a trace stream.

    Satisfies every built-in predicate so that a consumer sees exactly one
    terminal notification whatever filter is configured.  ``handle`` names
    the connection whose stream ended, or is ``None`` when the whole
    attachment was torn down.
    """

    handle: str | None = None


END_OF_TRACE = EndOfTrace()

TraceEvent = (
    StanzaReceived | TextSent | ElementSent | RouteSent | RouteReceived | OpaqueTrace | EndOfTrace
)


def is_end_of_trace(event: object) -> bool:
    return isinstance(event, EndOfTrace)
