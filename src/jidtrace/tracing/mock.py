"""Mock tracing attachment for testing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from jidtrace.models.enums import TraceFlag
from jidtrace.models.session import ProcessState
from jidtrace.models.trace import EndOfTrace, TraceEvent
from jidtrace.tracing.base import TraceAttachment, TraceDeliver


@dataclass
class MockTraceCall:
    """Record of a call made to MockTraceAttachment."""

    method: str
    args: dict[str, Any] = field(default_factory=dict)


class MockTraceAttachment(TraceAttachment):
    """Mock attachment that records calls and simulates traffic.

    Example:
        attachment = MockTraceAttachment()
        tracer = Tracer(directory, attachment)

        await tracer.trace_existing("alice@localhost/phone", "rx")
        assert attachment.calls[-1].method == "attach"

        await attachment.emit(StanzaReceived("c2s-1", StreamEventKind.STREAM_END))
        await attachment.end("c2s-1")
    """

    def __init__(self, states: dict[str, ProcessState] | None = None) -> None:
        self._attached: dict[str, TraceDeliver] = {}
        self._watch_deliver: TraceDeliver | None = None
        self._states = dict(states or {})
        # Tracking
        self.calls: list[MockTraceCall] = []
        self.watched_nodes: list[str] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def attached_handles(self) -> list[str]:
        return list(self._attached)

    @property
    def watching(self) -> bool:
        return self._watch_deliver is not None

    async def attach(
        self, handles: list[str], deliver: TraceDeliver, flags: list[TraceFlag]
    ) -> None:
        self.calls.append(
            MockTraceCall(method="attach", args={"handles": list(handles), "flags": list(flags)})
        )
        for handle in handles:
            self._attached[handle] = deliver

    async def detach(self, handles: list[str]) -> None:
        self.calls.append(MockTraceCall(method="detach", args={"handles": list(handles)}))
        for handle in handles:
            self._attached.pop(handle, None)

    async def watch_new_connections(
        self, nodes: list[str], deliver: TraceDeliver, flags: list[TraceFlag]
    ) -> None:
        self.calls.append(
            MockTraceCall(
                method="watch_new_connections",
                args={"nodes": list(nodes), "flags": list(flags)},
            )
        )
        self.watched_nodes = list(nodes)
        self._watch_deliver = deliver

    async def stop_watching(self) -> None:
        self.calls.append(MockTraceCall(method="stop_watching"))
        self._watch_deliver = None

    async def get_status(self, handle: str) -> ProcessState:
        self.calls.append(MockTraceCall(method="get_status", args={"handle": handle}))
        return self._states.get(handle) or ProcessState(handle=handle, status="running")

    def set_state(self, state: ProcessState) -> None:
        self._states[state.handle] = state

    # -- Simulation helpers --------------------------------------------------

    async def emit(self, *events: TraceEvent) -> None:
        """Deliver events as if the server had produced them."""
        for event in events:
            deliver = self._attached.get(event.handle) if event.handle else None
            if deliver is None:
                deliver = self._watch_deliver
            if deliver is not None:
                deliver(event)

    async def end(self, handle: str | None = None) -> None:
        """Deliver the end-of-trace sentinel for *handle* (or the whole watch)."""
        if handle is None:
            if self._watch_deliver is not None:
                self._watch_deliver(EndOfTrace())
            return
        await self.emit(EndOfTrace(handle))
