"""Abstract base for the live tracing attachment."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from jidtrace.models.enums import TraceFlag
from jidtrace.models.session import ProcessState
from jidtrace.models.trace import TraceEvent

logger = logging.getLogger("jidtrace.tracing")

# Receives every traced event, one at a time, in observation order.
TraceDeliver = Callable[[TraceEvent], None]

# Receives events that passed the filter.  May be sync or async.
TraceSink = Callable[[TraceEvent], Any]


def safe_invoke(sink: TraceSink, event: TraceEvent) -> None:
    """Invoke a sink, scheduling coroutines as tasks."""
    try:
        result = sink(event)
        if asyncio.coroutines.iscoroutine(result):
            with contextlib.suppress(RuntimeError):
                asyncio.get_running_loop().create_task(result)
    except Exception:
        logger.exception("Trace sink error")


def log_sink(event: TraceEvent) -> None:
    """Default sink: log each event on the ``jidtrace.trace`` logger."""
    logging.getLogger("jidtrace.trace").info("%r", event)


class TraceAttachment(ABC):
    """Hooks into a running server's tracing facility.

    jidtrace never produces events itself; an attachment intercepts
    send/receive/call activity of connection processes and hands each
    event to a ``deliver`` callback.

    Contract:
        * events are delivered one at a time, in the order they were
          observed on their connection;
        * every traced stream ends with exactly one
          :class:`~jidtrace.models.trace.EndOfTrace`;
        * ``deliver`` must not be called after ``detach``/``stop_watching``
          returns.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs."""
        ...

    @abstractmethod
    async def attach(
        self, handles: list[str], deliver: TraceDeliver, flags: list[TraceFlag]
    ) -> None:
        """Start tracing already-connected processes.

        Args:
            handles: Connection processes to trace.
            deliver: Receives their events.
            flags: Kinds of activity to trace on them.
        """
        ...

    @abstractmethod
    async def detach(self, handles: list[str]) -> None:
        """Stop tracing the given processes."""
        ...

    @abstractmethod
    async def watch_new_connections(
        self, nodes: list[str], deliver: TraceDeliver, flags: list[TraceFlag]
    ) -> None:
        """Trace every connection spawned from now on.

        Args:
            nodes: Cluster nodes to watch in addition to the local one.
            deliver: Receives the events of all new connections.
            flags: Kinds of activity to trace on them.
        """
        ...

    @abstractmethod
    async def stop_watching(self) -> None:
        """Stop tracing new connections and tear down their buffers."""
        ...

    @abstractmethod
    async def get_status(self, handle: str) -> ProcessState:
        """Return an introspection dump of a connection process."""
        ...
