"""Correlate a not-yet-identified new connection with a target JID."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

from jidtrace.errors import MalformedJidError
from jidtrace.filters.expression import FilterExpression
from jidtrace.jid.parser import parse_jid
from jidtrace.models.enums import ConnectionState
from jidtrace.models.jid import Jid
from jidtrace.models.trace import (
    ElementSent,
    EndOfTrace,
    RouteReceived,
    RouteSent,
    StanzaReceived,
    TraceEvent,
)
from jidtrace.models.xml import XmlElement

logger = logging.getLogger("jidtrace.tracing")


def _parse_address(text: str | None) -> Jid | None:
    if not text:
        return None
    try:
        return parse_jid(text)
    except MalformedJidError:
        # Domain-only addresses (the server itself) carry no session.
        return None


def _bound_jid(element: XmlElement) -> Jid | None:
    """JID assigned by a resource binding result, if *element* is one."""
    bind = element.find("bind")
    if bind is None:
        return None
    jid = bind.find("jid")
    return _parse_address(jid.text) if jid is not None else None


def extract_jids(event: TraceEvent) -> list[Jid]:
    """JIDs of the traced connection's own session revealed by *event*.

    * routed sends reveal the sender, routed receives the recipient;
    * element sends reveal the ``to`` address and any bound JID;
    * received stanzas reveal an explicit ``from`` address.
    """
    found: list[Jid | None] = []
    if isinstance(event, RouteSent):
        found.append(event.from_jid)
    elif isinstance(event, RouteReceived):
        found.append(event.to_jid)
    elif isinstance(event, ElementSent):
        found.append(_parse_address(event.element.get_attr("to")))
        found.append(_bound_jid(event.element))
    elif isinstance(event, StanzaReceived) and event.element is not None:
        found.append(_parse_address(event.element.get_attr("from")))
    return [jid for jid in found if jid is not None]


def _as_text(jid: Jid) -> Jid:
    return parse_jid(str(jid)) if isinstance(jid.user, bytes) else jid


class CorrelationBuffer:
    """Buffer events of new connections until one reveals the target JID.

    Every connection starts ``WATCHING``: its events are kept in a bounded
    buffer.  The first event revealing a JID the target designates makes
    its connection ``CORRELATED``; the buffered events of that connection
    are replayed through the filter into the sink and every other
    connection becomes ``DISCARDING``, its buffer released.  From then on
    only the correlated connection's events are filtered and forwarded.

    A discarded connection that later reveals the target as well is not
    silently ignored: its handle is recorded in :attr:`conflicts` and a
    warning is logged, so the operator can tell the correlation was
    ambiguous.

    The sink sees exactly one :class:`EndOfTrace`: when the correlated
    connection ends, or when the whole watch ends.
    """

    def __init__(
        self,
        target: Jid,
        expression: FilterExpression,
        sink: Callable[[TraceEvent], None],
        *,
        max_buffered: int = 1000,
    ) -> None:
        self._target = _as_text(target)
        self._expression = expression
        self._sink = sink
        self._max_buffered = max_buffered
        self._states: dict[str, ConnectionState] = {}
        self._buffers: dict[str, deque[TraceEvent]] = {}
        self._handle: str | None = None
        self._finished = False
        self.conflicts: list[str] = []
        self.forwarded = 0
        self.discarded = 0

    @property
    def target(self) -> Jid:
        return self._target

    @property
    def handle(self) -> str | None:
        """The correlated connection, once known."""
        return self._handle

    @property
    def correlated(self) -> bool:
        return self._handle is not None

    @property
    def finished(self) -> bool:
        return self._finished

    def state_of(self, handle: str) -> ConnectionState | None:
        return self._states.get(handle)

    def buffered(self, handle: str) -> int:
        return len(self._buffers.get(handle, ()))

    def reveals_target(self, event: TraceEvent) -> bool:
        return any(self._target.matches(_as_text(jid)) for jid in extract_jids(event))

    def feed(self, event: TraceEvent) -> None:
        """Consume one event from any watched connection."""
        if self._finished:
            return
        if isinstance(event, EndOfTrace):
            self._end(event)
            return

        handle = event.handle
        if self._handle is not None:
            if handle == self._handle:
                self._forward(event)
                return
            self._discard(handle)
            self.discarded += 1
            if self.reveals_target(event) and handle not in self.conflicts:
                self.conflicts.append(handle)
                logger.warning(
                    "Connection %s also claims %s, already correlated with %s",
                    handle,
                    self._target,
                    self._handle,
                )
            return

        if self._states.get(handle) == ConnectionState.DISCARDING:
            self.discarded += 1
            return

        buffer = self._buffers.get(handle)
        if buffer is None:
            buffer = self._buffers[handle] = deque(maxlen=self._max_buffered)
            self._states[handle] = ConnectionState.WATCHING
            logger.debug("Watching new connection %s", handle)
        if len(buffer) == self._max_buffered:
            self.discarded += 1
            logger.debug("Buffer full for %s, dropping oldest event", handle)
        buffer.append(event)

        if self.reveals_target(event):
            self._correlate(handle)

    def cancel(self) -> None:
        """Release every buffer without forwarding anything."""
        for handle in list(self._buffers):
            self._discard(handle)
        self._finished = True

    def _correlate(self, handle: str) -> None:
        self._handle = handle
        self._states[handle] = ConnectionState.CORRELATED
        replay = self._buffers.pop(handle)
        for other in list(self._buffers):
            self._discard(other)
        logger.info(
            "Correlated %s with connection %s (%d buffered events)",
            self._target,
            handle,
            len(replay),
        )
        for event in replay:
            self._forward(event)

    def _discard(self, handle: str) -> None:
        self._states[handle] = ConnectionState.DISCARDING
        released = self._buffers.pop(handle, None)
        if released:
            self.discarded += len(released)

    def _end(self, event: EndOfTrace) -> None:
        if event.handle is not None and event.handle != self._handle:
            # An unidentified or discarded connection went away.
            self._discard(event.handle)
            return
        for handle in list(self._buffers):
            self._discard(handle)
        self._finished = True
        self._forward(event)

    def _forward(self, event: TraceEvent) -> None:
        if self._expression.evaluate(event):
            self.forwarded += 1
            self._sink(event)
        else:
            self.discarded += 1
