"""Operator-facing API: trace one user's session on a running server."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from jidtrace.config import TraceConfig
from jidtrace.errors import MalformedJidError
from jidtrace.filters.catalog import PredicateCatalog, default_catalog
from jidtrace.filters.expression import FilterExpression, FilterSpec, from_spec
from jidtrace.jid.parser import parse_jid
from jidtrace.models.enums import ResolutionStatus, TraceFlag, TraceStatus
from jidtrace.models.jid import Jid
from jidtrace.models.session import InspectResult, ResolutionResult
from jidtrace.session.directory import SessionDirectory
from jidtrace.session.query import build_query
from jidtrace.session.resolver import resolve
from jidtrace.tracing.base import TraceAttachment, TraceSink, log_sink
from jidtrace.tracing.session import TraceSession, TraceStartResult

logger = logging.getLogger("jidtrace.tracing")


class Tracer:
    """Trace the traffic of a single session, chosen by JID.

    Two ways to pick the session:

    * :meth:`trace_existing` resolves the JID against the session
      directory and attaches to the live connection;
    * :meth:`trace_new` watches every new connection until one of them
      reveals the JID, then keeps only that one.

    Both return a :class:`TraceStartResult`; when started it carries the
    :class:`TraceSession` to stop the trace with.  Operator input errors
    (malformed JID, no or several matching sessions, a correlation already
    running) are reported as result statuses.  An invalid filter raises
    :class:`~jidtrace.errors.InvalidFilterSpecError` and an unknown trace
    flag raises :class:`ValueError`, both before anything is attached.  If
    the attachment itself fails, the error propagates and the tracer is
    left as it was.

    Trace flags select which process activity the attachment traces; they
    default to :attr:`TraceConfig.default_flags` (messages only).

    Example::

        tracer = Tracer(directory, attachment)
        result = await tracer.trace_existing("alice@localhost", "stream", sink=print)
        if result.started:
            ...
            await result.session.stop()
    """

    def __init__(
        self,
        directory: SessionDirectory,
        attachment: TraceAttachment,
        *,
        catalog: PredicateCatalog | None = None,
        config: TraceConfig | None = None,
    ) -> None:
        self._directory = directory
        self._attachment = attachment
        self._catalog = catalog if catalog is not None else default_catalog
        self._config = config or TraceConfig()
        self._sessions: dict[str, TraceSession] = {}
        self._correlating: TraceSession | None = None

    @property
    def config(self) -> TraceConfig:
        return self._config

    @property
    def sessions(self) -> list[TraceSession]:
        """Traces started by this tracer and not stopped yet."""
        return list(self._sessions.values())

    @property
    def correlating(self) -> TraceSession | None:
        """The running new-connection trace, if any."""
        return self._correlating

    def build_filter(self, spec: FilterSpec | None = None) -> FilterExpression:
        """Build *spec* (or the configured default) against the catalog."""
        return from_spec(self._config.default_filter if spec is None else spec, self._catalog)

    def trace_flags(self, flags: Iterable[str] | None = None) -> list[TraceFlag]:
        """Validate *flags* (or the configured default) as trace flags.

        Raises:
            ValueError: On an unknown flag.
        """
        chosen = self._config.default_flags if flags is None else flags
        return [TraceFlag(flag) for flag in chosen]

    def parse(self, text: str) -> Jid:
        return parse_jid(text, self._config.string_type)

    def resolve(self, text: str) -> ResolutionResult:
        """Resolve JID text to exactly one live handle (or say why not).

        Raises:
            MalformedJidError: If *text* is not a JID.
        """
        return resolve(build_query(self.parse(text)), self._directory).single()

    async def trace_existing(
        self,
        jid_text: str,
        filter_spec: FilterSpec | None = None,
        *,
        flags: Iterable[str] | None = None,
        sink: TraceSink | None = None,
    ) -> TraceStartResult:
        """Attach a filter to an already-connected session.

        A bare JID is accepted when the user has exactly one session;
        otherwise the result is ``AMBIGUOUS`` and lists the candidates so
        the operator can add a resource.
        """
        expression = self.build_filter(filter_spec)
        trace_flags = self.trace_flags(flags)
        try:
            resolution = self.resolve(jid_text)
        except MalformedJidError as exc:
            return TraceStartResult(
                status=TraceStatus.MALFORMED_JID, jid_text=jid_text, message=str(exc)
            )

        failed = _failure(resolution)
        if failed is not None:
            return TraceStartResult(
                status=failed,
                jid_text=jid_text,
                jid=resolution.jid,
                candidates=resolution.candidates,
            )

        assert resolution.handle is not None
        session = TraceSession(
            resolution.jid,
            expression,
            sink or log_sink,
            self._attachment,
            handles=[resolution.handle],
            on_stop=self._forget,
        )
        self._sessions[session.id] = session
        try:
            await self._attachment.attach([resolution.handle], session.dispatch, trace_flags)
        except BaseException:
            self._forget(session)
            raise
        logger.info(
            "Tracing %s on %s via %s (flags=%s)",
            resolution.jid,
            resolution.handle,
            self._attachment.name,
            ",".join(trace_flags),
        )
        return TraceStartResult(
            status=TraceStatus.STARTED,
            jid_text=jid_text,
            jid=resolution.jid,
            session=session,
            candidates=resolution.candidates,
        )

    async def trace_new(
        self,
        jid_text: str,
        filter_spec: FilterSpec | None = None,
        *,
        nodes: list[str] | None = None,
        flags: Iterable[str] | None = None,
        sink: TraceSink | None = None,
    ) -> TraceStartResult:
        """Trace the session of a user who is about to connect.

        Every new connection (on this node and on *nodes*) is buffered
        until one of them carries a stanza revealing the JID; that
        connection's buffered and later events are filtered into the sink,
        the rest are dropped.  Only one such trace may run per tracer.
        """
        expression = self.build_filter(filter_spec)
        trace_flags = self.trace_flags(flags)
        try:
            jid = self.parse(jid_text)
        except MalformedJidError as exc:
            return TraceStartResult(
                status=TraceStatus.MALFORMED_JID, jid_text=jid_text, message=str(exc)
            )

        if self._correlating is not None and not self._correlating.stopped:
            return TraceStartResult(
                status=TraceStatus.TRACER_ALREADY_RUNNING,
                jid_text=jid_text,
                jid=jid,
                message=f"Already waiting for {self._correlating.jid}",
            )

        watch_nodes = list(nodes) if nodes is not None else list(self._config.default_nodes)
        session = TraceSession(
            jid,
            expression,
            sink or log_sink,
            self._attachment,
            max_buffered=self._config.max_buffered_events,
            correlate=True,
            on_stop=self._forget,
        )
        self._sessions[session.id] = session
        self._correlating = session
        try:
            await self._attachment.watch_new_connections(
                watch_nodes, session.dispatch, trace_flags
            )
        except BaseException:
            self._forget(session)
            raise
        logger.info(
            "Waiting for %s to connect (nodes=%s, flags=%s)",
            jid,
            watch_nodes or "local",
            ",".join(trace_flags),
        )
        return TraceStartResult(
            status=TraceStatus.STARTED, jid_text=jid_text, jid=jid, session=session
        )

    async def inspect_state(self, jid_text: str) -> InspectResult:
        """Dump the internal state of the connection serving a JID."""
        try:
            resolution = self.resolve(jid_text)
        except MalformedJidError as exc:
            return InspectResult(status=TraceStatus.MALFORMED_JID, message=str(exc))

        failed = _failure(resolution)
        if failed is not None:
            return InspectResult(
                status=failed, jid=resolution.jid, candidates=resolution.candidates
            )

        assert resolution.handle is not None
        state = await self._attachment.get_status(resolution.handle)
        return InspectResult(status=TraceStatus.FOUND, jid=resolution.jid, state=state)

    async def stop_all(self) -> None:
        """Stop every trace started by this tracer."""
        for session in list(self._sessions.values()):
            await session.stop()

    def _forget(self, session: TraceSession) -> None:
        self._sessions.pop(session.id, None)
        if self._correlating is session:
            self._correlating = None


def _failure(resolution: ResolutionResult) -> TraceStatus | None:
    if resolution.status == ResolutionStatus.NOT_FOUND:
        return TraceStatus.NOT_FOUND
    if resolution.status == ResolutionStatus.AMBIGUOUS:
        return TraceStatus.AMBIGUOUS
    return None
