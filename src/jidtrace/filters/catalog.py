"""Named predicates over trace events."""

from __future__ import annotations

import logging
from collections.abc import Callable

from jidtrace.models.trace import (
    STREAM_CLOSE,
    XML_PROLOGUE,
    ElementSent,
    EndOfTrace,
    RouteReceived,
    RouteSent,
    StanzaReceived,
    TextSent,
    TraceEvent,
)

logger = logging.getLogger("jidtrace.filters")

Predicate = Callable[[TraceEvent], bool]

# -- Built-in predicates ----------------------------------------------------
#
# Each one accepts the end-of-trace sentinel.


def raw(event: TraceEvent) -> bool:
    """Any traced activity."""
    return True


def rx(event: TraceEvent) -> bool:
    """Inbound stream start, stanza or stream end."""
    return isinstance(event, EndOfTrace | StanzaReceived)


def tx(event: TraceEvent) -> bool:
    """Outbound XML prologue, stream closing tag, or any element send."""
    if isinstance(event, EndOfTrace | ElementSent):
        return True
    if isinstance(event, TextSent):
        text = event.decoded
        return text.startswith(XML_PROLOGUE) or text == STREAM_CLOSE
    return False


def tx_text(event: TraceEvent) -> bool:
    """Outbound raw text send."""
    return isinstance(event, EndOfTrace | TextSent)


def tx_element(event: TraceEvent) -> bool:
    """Outbound element send."""
    return isinstance(event, EndOfTrace | ElementSent)


def routed_out(event: TraceEvent) -> bool:
    """Routing hand-off sent from the traced connection."""
    return isinstance(event, EndOfTrace | RouteSent)


def routed_in(event: TraceEvent) -> bool:
    """Routing hand-off received by the traced connection."""
    return isinstance(event, EndOfTrace | RouteReceived)


def stream(event: TraceEvent) -> bool:
    """Client stream traffic in either direction: ``rx`` or ``tx``."""
    return rx(event) or tx(event)


BUILTIN_PREDICATES: dict[str, Predicate] = {
    "raw": raw,
    "rx": rx,
    "tx": tx,
    "tx_text": tx_text,
    "tx_element": tx_element,
    "routed_out": routed_out,
    "routed_in": routed_in,
    "stream": stream,
}


class PredicateCatalog:
    """Registry of named predicates.

    Filter expressions refer to predicates by name; names are resolved
    against a catalog once, when the expression is built, so an unknown
    name never surfaces during evaluation.

    Example::

        catalog = PredicateCatalog.with_builtins()

        @catalog.predicate("presence_out")
        def presence_out(event):
            return isinstance(event, ElementSent) and event.element.name == "presence"
    """

    def __init__(self) -> None:
        self._predicates: dict[str, Predicate] = {}

    @classmethod
    def with_builtins(cls) -> PredicateCatalog:
        catalog = cls()
        for name, fn in BUILTIN_PREDICATES.items():
            catalog.register(name, fn)
        return catalog

    def register(self, name: str, fn: Predicate, *, replace: bool = False) -> Predicate:
        """Register *fn* under *name*.

        Raises:
            ValueError: If *name* is taken and ``replace`` is false.
            TypeError: If *fn* is not callable.
        """
        if not callable(fn):
            raise TypeError(f"Predicate {name!r} is not callable: {fn!r}")
        if name in self._predicates and not replace:
            raise ValueError(f"Predicate already registered: {name}")
        self._predicates[name] = fn
        logger.debug("Registered predicate: %s", name)
        return fn

    def predicate(self, name: str, *, replace: bool = False) -> Callable[[Predicate], Predicate]:
        """Decorator form of :meth:`register`."""

        def decorator(fn: Predicate) -> Predicate:
            return self.register(name, fn, replace=replace)

        return decorator

    def get(self, name: str) -> Predicate | None:
        return self._predicates.get(name)

    def name_of(self, fn: Predicate) -> str | None:
        """Return the name *fn* is registered under, if any."""
        for name, registered in self._predicates.items():
            if registered is fn:
                return name
        return None

    @property
    def names(self) -> list[str]:
        return list(self._predicates)

    def copy(self) -> PredicateCatalog:
        clone = PredicateCatalog()
        clone._predicates = dict(self._predicates)
        return clone

    def __contains__(self, name: object) -> bool:
        return name in self._predicates

    def __len__(self) -> int:
        return len(self._predicates)


default_catalog = PredicateCatalog.with_builtins()
