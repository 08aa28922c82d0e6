"""Session directory abstraction and in-memory implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any
from uuid import uuid4

from jidtrace.models.jid import Jid
from jidtrace.models.session import Session
from jidtrace.session.query import SessionQuery


class SessionDirectory(ABC):
    """Live mapping from JIDs to connection handles.

    The directory is owned and mutated by the messaging server; jidtrace
    only ever reads it.  Implement this ABC to plug in the server's own
    session table.  The library ships with ``InMemorySessionDirectory`` for
    development and testing.
    """

    @abstractmethod
    def lookup(self, query: SessionQuery) -> list[Session]:
        """Return every session matching *query* in a single read.

        No ordering is guaranteed among the results.
        """
        ...


class InMemorySessionDirectory(SessionDirectory):
    """Dict-based session directory keyed by session id."""

    def __init__(self, sessions: list[Session] | None = None) -> None:
        self._sessions: dict[str, Session] = {}
        for session in sessions or []:
            self._sessions[session.sid] = session

    def open_session(
        self,
        jid: Jid,
        handle: str,
        *,
        sid: str | None = None,
        priority: int | None = None,
        info: dict[str, Any] | None = None,
    ) -> Session:
        """Register a live session for a full JID."""
        if not jid.is_full:
            raise ValueError(f"Sessions are registered under full JIDs, got {jid}")
        session = Session(
            sid=sid or uuid4().hex,
            jid=jid,
            handle=handle,
            priority=priority,
            info=info or {},
        )
        self._sessions[session.sid] = session
        return session

    def close_session(self, sid: str) -> bool:
        return self._sessions.pop(sid, None) is not None

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def lookup(self, query: SessionQuery) -> list[Session]:
        # Copy first so a concurrent open/close cannot break iteration.
        snapshot = list(self._sessions.values())
        return [session for session in snapshot if query.matches(session)]

    def __len__(self) -> int:
        return len(self._sessions)
