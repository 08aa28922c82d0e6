"""Handle object for a running trace."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from jidtrace.errors import (
    AmbiguousSessionError,
    MalformedJidError,
    SessionNotFoundError,
    TracerAlreadyRunningError,
)
from jidtrace.filters.expression import FilterExpression
from jidtrace.models.enums import TraceStatus
from jidtrace.models.jid import Jid
from jidtrace.models.session import SessionCandidate
from jidtrace.models.trace import EndOfTrace, TraceEvent
from jidtrace.tracing.base import TraceAttachment, TraceSink, safe_invoke
from jidtrace.tracing.correlation import CorrelationBuffer

logger = logging.getLogger("jidtrace.tracing")


class TraceSession:
    """A running trace of one session, returned by the tracer.

    Every event the attachment delivers goes through :meth:`dispatch`:
    directly through the filter for an already-connected session, or
    through a :class:`CorrelationBuffer` for a new connection.  Events
    that pass reach the sink.  Call :meth:`stop` to tear the trace down.
    """

    def __init__(
        self,
        jid: Jid,
        expression: FilterExpression,
        sink: TraceSink,
        attachment: TraceAttachment,
        *,
        handles: list[str] | None = None,
        max_buffered: int = 1000,
        correlate: bool = False,
        on_stop: Callable[[TraceSession], Awaitable[None] | None] | None = None,
    ) -> None:
        self.id = uuid4().hex
        self.jid = jid
        self.expression = expression
        self._sink = sink
        self._attachment = attachment
        self._handles = list(handles or [])
        self._on_stop = on_stop
        self._stopped = False
        self._ended = False
        self._forwarded = 0
        self._discarded = 0
        self.correlation: CorrelationBuffer | None = None
        if correlate:
            self.correlation = CorrelationBuffer(
                jid, expression, self._emit, max_buffered=max_buffered
            )

    @property
    def handles(self) -> list[str]:
        """Traced connection handles (the correlated one, once known)."""
        if self.correlation is not None:
            return [self.correlation.handle] if self.correlation.handle else []
        return list(self._handles)

    @property
    def forwarded(self) -> int:
        """Events delivered to the sink."""
        return self._forwarded

    @property
    def discarded(self) -> int:
        """Events dropped by the filter, or by correlation for a new connection."""
        if self.correlation is not None:
            return self.correlation.discarded
        return self._discarded

    @property
    def active(self) -> bool:
        return not self._stopped and not self._ended

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def ended(self) -> bool:
        return self._ended

    def dispatch(self, event: TraceEvent) -> None:
        """Entry point for the attachment: consume one traced event."""
        if not self.active:
            return
        if self.correlation is not None:
            self.correlation.feed(event)
            if self.correlation.finished:
                self._ended = True
            return
        if self.expression.evaluate(event):
            self._emit(event)
        else:
            self._discarded += 1
        if isinstance(event, EndOfTrace):
            self._ended = True

    async def stop(self) -> None:
        """Detach from the server; no event reaches the sink afterwards."""
        if self._stopped:
            return
        self._stopped = True
        if self.correlation is not None:
            await self._attachment.stop_watching()
            self.correlation.cancel()
        elif self._handles:
            await self._attachment.detach(self._handles)
        logger.info("Stopped trace %s of %s", self.id, self.jid)
        if self._on_stop is not None:
            result = self._on_stop(self)
            if result is not None:
                await result

    def _emit(self, event: TraceEvent) -> None:
        if isinstance(event, EndOfTrace):
            if self._ended:
                return
            self._ended = True
            logger.info("Trace %s of %s ended", self.id, self.jid)
        self._forwarded += 1
        safe_invoke(self._sink, event)

    def __repr__(self) -> str:
        return f"TraceSession(id={self.id!r}, jid='{self.jid}', handles={self.handles!r})"


class TraceStartResult(BaseModel):
    """Result of an operator request to start tracing."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: TraceStatus
    jid_text: str
    jid: Jid | None = None
    session: TraceSession | None = None
    candidates: list[SessionCandidate] = Field(default_factory=list)
    message: str | None = None

    @property
    def started(self) -> bool:
        return self.status == TraceStatus.STARTED

    def unwrap(self) -> TraceSession:
        """Return the started session or raise the error the status stands for."""
        if self.session is not None:
            return self.session
        if self.status == TraceStatus.MALFORMED_JID:
            raise MalformedJidError(self.jid_text)
        if self.status == TraceStatus.AMBIGUOUS:
            raise AmbiguousSessionError(self.candidates)
        if self.status == TraceStatus.TRACER_ALREADY_RUNNING:
            raise TracerAlreadyRunningError(self.message or self.jid_text)
        raise SessionNotFoundError(f"No session for {self.jid_text}")

