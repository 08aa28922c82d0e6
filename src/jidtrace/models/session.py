"""Session directory and resolution models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from jidtrace.errors import AmbiguousSessionError, SessionNotFoundError
from jidtrace.models.enums import ResolutionStatus, TraceStatus
from jidtrace.models.jid import Jid, Segment


class Session(BaseModel):
    """A live session as registered in the session directory.

    ``sid`` is unique per directory entry; ``jid`` is not guaranteed to be,
    since a directory may be transiently inconsistent.
    """

    model_config = ConfigDict(frozen=True)

    sid: str
    jid: Jid
    handle: str
    priority: int | None = None
    info: dict[str, Any] = Field(default_factory=dict)


class SessionCandidate(BaseModel):
    """A ``(resource, handle)`` pair returned by a resolution."""

    model_config = ConfigDict(frozen=True)

    resource: Segment | None
    handle: str

    @classmethod
    def of(cls, session: Session) -> SessionCandidate:
        return cls(resource=session.jid.resource, handle=session.handle)


class ResolutionResult(BaseModel):
    """Result of resolving a session query against a directory snapshot."""

    status: ResolutionStatus
    jid: Jid
    handle: str | None = None
    candidates: list[SessionCandidate] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (ResolutionStatus.IDENTIFIED, ResolutionStatus.CANDIDATES)

    def require_handle(self) -> str:
        """Return the one resolved handle.

        Raises:
            SessionNotFoundError: If nothing matched.
            AmbiguousSessionError: If more than one session matched.
        """
        result = self.single()
        if result.status == ResolutionStatus.NOT_FOUND:
            raise SessionNotFoundError(f"No session for {self.jid}")
        if result.status == ResolutionStatus.AMBIGUOUS:
            raise AmbiguousSessionError(result.candidates)
        assert result.handle is not None
        return result.handle

    def single(self) -> ResolutionResult:
        """Narrow a candidate list to one handle.

        A single candidate becomes ``IDENTIFIED``; several become
        ``AMBIGUOUS`` so the operator can add a resource qualifier.
        Other results are returned unchanged.
        """
        if self.status != ResolutionStatus.CANDIDATES:
            return self
        if len(self.candidates) == 1:
            return ResolutionResult(
                status=ResolutionStatus.IDENTIFIED,
                jid=self.jid,
                handle=self.candidates[0].handle,
                candidates=list(self.candidates),
            )
        return ResolutionResult(
            status=ResolutionStatus.AMBIGUOUS, jid=self.jid, candidates=list(self.candidates)
        )


class ProcessState(BaseModel):
    """Introspection dump of a connection process."""

    handle: str
    module: str | None = None
    status: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class InspectResult(BaseModel):
    """Result of a one-shot state inspection."""

    status: TraceStatus
    jid: Jid | None = None
    state: ProcessState | None = None
    candidates: list[SessionCandidate] = Field(default_factory=list)
    message: str | None = None
