"""Exception hierarchy for jidtrace."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jidtrace.models.session import SessionCandidate


class JidTraceError(Exception):
    """Base exception for all jidtrace errors."""


class MalformedJidError(JidTraceError):
    """JID text does not split into a bare or full JID."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Malformed JID: {text!r}")
        self.text = text


class InvalidFilterSpecError(JidTraceError):
    """Filter expression references an unknown predicate or has the wrong shape."""


class TracerAlreadyRunningError(JidTraceError):
    """A new-connection correlation is already active."""


class SessionNotFoundError(JidTraceError):
    """No live session matches the JID."""


class AmbiguousSessionError(JidTraceError):
    """More than one live session matches the JID."""

    def __init__(self, candidates: list[SessionCandidate]) -> None:
        super().__init__(f"{len(candidates)} sessions match")
        self.candidates = candidates
