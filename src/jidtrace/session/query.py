"""Session directory queries derived from a JID."""

from __future__ import annotations

from dataclasses import dataclass

from jidtrace.models.jid import Jid, Segment
from jidtrace.models.session import Session


@dataclass(frozen=True)
class ExactSessionQuery:
    """Match the single session registered under a full JID."""

    jid: Jid

    @classmethod
    def for_jid(cls, jid: Jid) -> ExactSessionQuery:
        if not jid.is_full:
            raise ValueError(f"Exact query needs a full JID, got {jid}")
        return cls(jid=jid)

    def matches(self, session: Session) -> bool:
        return session.jid == self.jid


@dataclass(frozen=True)
class PartialSessionQuery:
    """Match every session of a user on a domain, whatever the resource."""

    user: Segment
    domain: Segment

    @classmethod
    def for_jid(cls, jid: Jid) -> PartialSessionQuery:
        return cls(user=jid.user, domain=jid.domain)

    @property
    def jid(self) -> Jid:
        return Jid(self.user, self.domain)

    def matches(self, session: Session) -> bool:
        return (session.jid.user, session.jid.domain) == (self.user, self.domain)


SessionQuery = ExactSessionQuery | PartialSessionQuery


def build_query(jid: Jid) -> SessionQuery:
    """Return an exact query for a full JID, a partial one for a bare JID."""
    if jid.is_full:
        return ExactSessionQuery.for_jid(jid)
    return PartialSessionQuery.for_jid(jid)
