"""Tests for the operator-facing Tracer API."""

from __future__ import annotations

import asyncio
import logging
from types import SimpleNamespace

import pytest

from jidtrace.config import TraceConfig
from jidtrace.errors import (
    AmbiguousSessionError,
    InvalidFilterSpecError,
    MalformedJidError,
    SessionNotFoundError,
    TracerAlreadyRunningError,
)
from jidtrace.models.enums import TraceFlag, TraceStatus
from jidtrace.models.jid import Jid
from jidtrace.models.session import ProcessState, SessionCandidate
from jidtrace.models.trace import EndOfTrace, TraceEvent
from jidtrace.session.directory import InMemorySessionDirectory
from jidtrace.tracing.base import TraceDeliver
from jidtrace.tracing.mock import MockTraceAttachment
from jidtrace.tracing.tracer import Tracer


class _FlakyAttachment(MockTraceAttachment):
    """Attachment whose node is unreachable until told otherwise."""

    def __init__(self) -> None:
        super().__init__()
        self.unreachable = True

    async def attach(
        self, handles: list[str], deliver: TraceDeliver, flags: list[TraceFlag]
    ) -> None:
        if self.unreachable:
            raise ConnectionError("node unreachable")
        await super().attach(handles, deliver, flags)

    async def watch_new_connections(
        self, nodes: list[str], deliver: TraceDeliver, flags: list[TraceFlag]
    ) -> None:
        if self.unreachable:
            raise ConnectionError("node unreachable")
        await super().watch_new_connections(nodes, deliver, flags)


@pytest.fixture
def tracer(directory: InMemorySessionDirectory, attachment: MockTraceAttachment) -> Tracer:
    return Tracer(directory, attachment)


class TestTraceExisting:
    async def test_full_jid(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        received: list[TraceEvent] = []
        result = await tracer.trace_existing("alice@localhost/phone", "rx", sink=received.append)

        assert result.status == TraceStatus.STARTED
        assert result.started
        assert result.jid == Jid("alice", "localhost", "phone")
        assert result.session is not None
        assert result.session.handles == ["c2s-1"]
        assert attachment.calls[-1].method == "attach"
        assert attachment.calls[-1].args == {"handles": ["c2s-1"], "flags": ["m"]}
        assert tracer.sessions == [result.session]

    async def test_filters_events(
        self, tracer: Tracer, attachment: MockTraceAttachment, traffic: SimpleNamespace
    ) -> None:
        received: list[TraceEvent] = []
        result = await tracer.trace_existing("alice@localhost/phone", "rx", sink=received.append)

        stanza = traffic.rx_stanza("c2s-1")
        await attachment.emit(stanza, traffic.tx_element("c2s-1"), traffic.rx_stanza("c2s-2"))
        await attachment.end("c2s-1")

        assert received == [stanza, EndOfTrace("c2s-1")]
        session = result.unwrap()
        assert session.ended
        assert not session.active
        assert session.forwarded == 2
        assert session.discarded == 1

    async def test_single_resource_bare_jid(self, tracer: Tracer) -> None:
        result = await tracer.trace_existing("bob@localhost", "raw", sink=lambda e: None)
        assert result.status == TraceStatus.STARTED
        assert result.unwrap().handles == ["c2s-3"]

    async def test_ambiguous_bare_jid(
        self, tracer: Tracer, attachment: MockTraceAttachment
    ) -> None:
        result = await tracer.trace_existing("alice@localhost")

        assert result.status == TraceStatus.AMBIGUOUS
        assert result.session is None
        assert set(result.candidates) == {
            SessionCandidate(resource="phone", handle="c2s-1"),
            SessionCandidate(resource="laptop", handle="c2s-2"),
        }
        assert attachment.calls == []
        with pytest.raises(AmbiguousSessionError):
            result.unwrap()

    async def test_not_found(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        result = await tracer.trace_existing("carol@localhost/home")
        assert result.status == TraceStatus.NOT_FOUND
        assert attachment.calls == []
        with pytest.raises(SessionNotFoundError):
            result.unwrap()

    async def test_malformed_jid(self, tracer: Tracer) -> None:
        result = await tracer.trace_existing("alice")
        assert result.status == TraceStatus.MALFORMED_JID
        assert result.jid_text == "alice"
        assert result.message is not None
        with pytest.raises(MalformedJidError):
            result.unwrap()

    async def test_invalid_filter_raises_before_attach(
        self, tracer: Tracer, attachment: MockTraceAttachment
    ) -> None:
        with pytest.raises(InvalidFilterSpecError):
            await tracer.trace_existing("alice@localhost/phone", "bogus")
        assert attachment.calls == []
        assert tracer.sessions == []

    async def test_default_filter_from_config(
        self,
        directory: InMemorySessionDirectory,
        attachment: MockTraceAttachment,
        traffic: SimpleNamespace,
    ) -> None:
        tracer = Tracer(directory, attachment, config=TraceConfig(default_filter="routed_out"))
        received: list[TraceEvent] = []
        await tracer.trace_existing("alice@localhost/phone", sink=received.append)

        routed = traffic.routed_out("c2s-1")
        await attachment.emit(traffic.rx_stanza("c2s-1"), routed)
        assert received == [routed]

    async def test_plain_data_filter(
        self, tracer: Tracer, attachment: MockTraceAttachment, traffic: SimpleNamespace
    ) -> None:
        received: list[TraceEvent] = []
        await tracer.trace_existing(
            "alice@localhost/phone", {"any": ["routed_in", "rx"]}, sink=received.append
        )
        events = [
            traffic.routed_in("c2s-1"),
            traffic.tx_text("c2s-1"),
            traffic.rx_stream_end("c2s-1"),
        ]
        await attachment.emit(*events)
        assert received == [events[0], events[2]]

    async def test_stop(
        self, tracer: Tracer, attachment: MockTraceAttachment, traffic: SimpleNamespace
    ) -> None:
        received: list[TraceEvent] = []
        result = await tracer.trace_existing("alice@localhost/phone", sink=received.append)
        session = result.unwrap()

        await session.stop()
        await session.stop()
        session.dispatch(traffic.rx_stanza("c2s-1"))

        assert received == []
        assert session.stopped
        assert [c.method for c in attachment.calls] == ["attach", "detach"]
        assert tracer.sessions == []

    async def test_async_sink(
        self, tracer: Tracer, attachment: MockTraceAttachment, traffic: SimpleNamespace
    ) -> None:
        received: list[TraceEvent] = []

        async def sink(event: TraceEvent) -> None:
            received.append(event)

        await tracer.trace_existing("alice@localhost/phone", sink=sink)
        stanza = traffic.rx_stanza("c2s-1")
        await attachment.emit(stanza)
        await asyncio.sleep(0)

        assert received == [stanza]

    async def test_failing_sink_is_logged(
        self,
        tracer: Tracer,
        attachment: MockTraceAttachment,
        traffic: SimpleNamespace,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        def sink(event: TraceEvent) -> None:
            raise RuntimeError("boom")

        result = await tracer.trace_existing("alice@localhost/phone", sink=sink)
        with caplog.at_level(logging.ERROR, logger="jidtrace.tracing"):
            await attachment.emit(traffic.rx_stanza("c2s-1"), traffic.rx_stanza("c2s-1"))

        assert caplog.text.count("Trace sink error") == 2
        assert result.unwrap().forwarded == 2

    async def test_default_sink_logs(
        self,
        tracer: Tracer,
        attachment: MockTraceAttachment,
        traffic: SimpleNamespace,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await tracer.trace_existing("alice@localhost/phone")
        with caplog.at_level(logging.INFO, logger="jidtrace.trace"):
            await attachment.emit(traffic.rx_stanza("c2s-1"))
        assert "StanzaReceived" in caplog.text

    async def test_bytes_string_type(self, attachment: MockTraceAttachment) -> None:
        directory = InMemorySessionDirectory()
        directory.open_session(Jid(b"alice", b"localhost", b"phone"), "c2s-1")
        tracer = Tracer(directory, attachment, config=TraceConfig(string_type="bytes"))

        result = await tracer.trace_existing("alice@localhost/phone")

        assert result.status == TraceStatus.STARTED
        assert result.jid == Jid(b"alice", b"localhost", b"phone")

    async def test_default_flags(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        await tracer.trace_existing("bob@localhost")
        assert attachment.calls[-1].args["flags"] == [TraceFlag.MESSAGES]

    async def test_flags_forwarded(
        self, tracer: Tracer, attachment: MockTraceAttachment
    ) -> None:
        await tracer.trace_existing("bob@localhost", flags=["m", "c"])
        assert attachment.calls[-1].args == {
            "handles": ["c2s-3"],
            "flags": [TraceFlag.MESSAGES, TraceFlag.CALLS],
        }

    async def test_default_flags_from_config(
        self, directory: InMemorySessionDirectory, attachment: MockTraceAttachment
    ) -> None:
        tracer = Tracer(directory, attachment, config=TraceConfig(default_flags=["c", "sos"]))
        await tracer.trace_existing("bob@localhost")
        assert attachment.calls[-1].args["flags"] == ["c", "sos"]

    async def test_unknown_flag_raises_before_attach(
        self, tracer: Tracer, attachment: MockTraceAttachment
    ) -> None:
        with pytest.raises(ValueError):
            await tracer.trace_existing("bob@localhost", flags=["m", "bogus"])
        assert attachment.calls == []

    async def test_failed_attach_leaves_no_session(
        self, directory: InMemorySessionDirectory
    ) -> None:
        attachment = _FlakyAttachment()
        tracer = Tracer(directory, attachment)

        with pytest.raises(ConnectionError):
            await tracer.trace_existing("bob@localhost")
        assert tracer.sessions == []

        await tracer.stop_all()
        assert attachment.calls == []

        attachment.unreachable = False
        result = await tracer.trace_existing("bob@localhost")
        assert tracer.sessions == [result.unwrap()]


class TestTraceNew:
    async def test_starts_watching(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        result = await tracer.trace_new("alice@localhost", nodes=["node2@cluster"])

        assert result.status == TraceStatus.STARTED
        assert attachment.watching
        assert attachment.watched_nodes == ["node2@cluster"]
        assert tracer.correlating is result.session
        assert result.unwrap().handles == []

    async def test_default_nodes_from_config(
        self, directory: InMemorySessionDirectory, attachment: MockTraceAttachment
    ) -> None:
        config = TraceConfig(default_nodes=["a@host", "b@host"])
        tracer = Tracer(directory, attachment, config=config)
        await tracer.trace_new("alice@localhost")
        assert attachment.watched_nodes == ["a@host", "b@host"]

    async def test_correlates_new_connection(
        self, tracer: Tracer, attachment: MockTraceAttachment, traffic: SimpleNamespace
    ) -> None:
        received: list[TraceEvent] = []
        result = await tracer.trace_new("alice@localhost", "stream", sink=received.append)
        session = result.unwrap()

        start = traffic.rx_stream_start("c2s-6")
        await attachment.emit(
            traffic.rx_stream_start("c2s-5"),
            start,
            traffic.tx_text("c2s-5"),
        )
        assert received == []

        bind = traffic.bind_result("c2s-6")
        later = traffic.rx_stanza("c2s-6")
        await attachment.emit(bind, traffic.rx_stanza("c2s-5"), later)
        await attachment.end("c2s-6")

        assert received == [start, bind, later, EndOfTrace("c2s-6")]
        assert session.handles == ["c2s-6"]
        assert session.ended
        assert session.forwarded == 4
        assert session.discarded == 3
        assert session.correlation is not None
        assert session.correlation.conflicts == []

    async def test_already_running(self, tracer: Tracer) -> None:
        first = await tracer.trace_new("alice@localhost")
        second = await tracer.trace_new("bob@localhost")

        assert first.started
        assert second.status == TraceStatus.TRACER_ALREADY_RUNNING
        assert second.session is None
        with pytest.raises(TracerAlreadyRunningError):
            second.unwrap()

    async def test_allowed_again_after_stop(
        self, tracer: Tracer, attachment: MockTraceAttachment
    ) -> None:
        first = await tracer.trace_new("alice@localhost")
        await first.unwrap().stop()

        assert not attachment.watching
        assert tracer.correlating is None
        second = await tracer.trace_new("bob@localhost")
        assert second.started

    async def test_existing_traces_do_not_block(self, tracer: Tracer) -> None:
        await tracer.trace_existing("bob@localhost")
        result = await tracer.trace_new("alice@localhost")
        assert result.started

    async def test_malformed_jid(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        result = await tracer.trace_new("a@b/c/d")
        assert result.status == TraceStatus.MALFORMED_JID
        assert not attachment.watching

    async def test_invalid_filter(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        with pytest.raises(InvalidFilterSpecError):
            await tracer.trace_new("alice@localhost", {"any": ["nope"]})
        assert not attachment.watching
        assert tracer.correlating is None

    async def test_stop_all(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        await tracer.trace_existing("bob@localhost")
        await tracer.trace_new("alice@localhost")

        await tracer.stop_all()

        assert tracer.sessions == []
        assert tracer.correlating is None
        assert {c.method for c in attachment.calls} >= {"detach", "stop_watching"}

    async def test_flags_forwarded(
        self, tracer: Tracer, attachment: MockTraceAttachment
    ) -> None:
        await tracer.trace_new("alice@localhost", flags=["m", "sos"])
        assert attachment.calls[-1].args == {
            "nodes": [],
            "flags": [TraceFlag.MESSAGES, TraceFlag.SET_ON_SPAWN],
        }

    async def test_unknown_flag(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        with pytest.raises(ValueError):
            await tracer.trace_new("alice@localhost", flags=["q"])
        assert not attachment.watching
        assert tracer.correlating is None

    async def test_failed_watch_can_be_retried(
        self, directory: InMemorySessionDirectory
    ) -> None:
        attachment = _FlakyAttachment()
        tracer = Tracer(directory, attachment)

        with pytest.raises(ConnectionError):
            await tracer.trace_new("alice@localhost")
        assert tracer.correlating is None
        assert tracer.sessions == []

        attachment.unreachable = False
        result = await tracer.trace_new("bob@localhost")
        assert result.status == TraceStatus.STARTED
        assert tracer.correlating is result.session


class TestInspectState:
    async def test_found(self, tracer: Tracer, attachment: MockTraceAttachment) -> None:
        attachment.set_state(
            ProcessState(handle="c2s-3", module="c2s", status="session_established")
        )
        result = await tracer.inspect_state("bob@localhost/desk")

        assert result.status == TraceStatus.FOUND
        assert result.state is not None
        assert result.state.status == "session_established"
        assert attachment.calls[-1].args == {"handle": "c2s-3"}

    async def test_default_state(self, tracer: Tracer) -> None:
        result = await tracer.inspect_state("bob@localhost")
        assert result.state == ProcessState(handle="c2s-3", status="running")

    async def test_not_found(self, tracer: Tracer) -> None:
        result = await tracer.inspect_state("carol@localhost")
        assert result.status == TraceStatus.NOT_FOUND
        assert result.state is None

    async def test_ambiguous(self, tracer: Tracer) -> None:
        result = await tracer.inspect_state("alice@localhost")
        assert result.status == TraceStatus.AMBIGUOUS
        assert {c.handle for c in result.candidates} == {"c2s-1", "c2s-2"}

    async def test_malformed(self, tracer: Tracer) -> None:
        result = await tracer.inspect_state("alice")
        assert result.status == TraceStatus.MALFORMED_JID
