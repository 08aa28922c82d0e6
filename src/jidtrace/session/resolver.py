"""Resolve a session query to live connection handles."""

from __future__ import annotations

import logging

from jidtrace.models.enums import ResolutionStatus
from jidtrace.models.session import ResolutionResult, SessionCandidate
from jidtrace.session.directory import SessionDirectory
from jidtrace.session.query import ExactSessionQuery, SessionQuery

logger = logging.getLogger("jidtrace.session")


def resolve(query: SessionQuery, directory: SessionDirectory) -> ResolutionResult:
    """Run *query* against a single snapshot of *directory*.

    Exact queries yield ``IDENTIFIED`` with the one handle, or
    ``AMBIGUOUS`` when the directory holds the same full JID more than once.
    Partial queries yield ``CANDIDATES`` with every ``(resource, handle)``
    pair; narrowing them is left to the caller (see
    :meth:`ResolutionResult.single`).  No match is ``NOT_FOUND`` for both.
    There is no retry: a session that disconnects mid-resolution simply
    isn't found.
    """
    logger.info("Session query: %r", query)
    sessions = directory.lookup(query)
    candidates = [SessionCandidate.of(session) for session in sessions]
    jid = query.jid

    if not candidates:
        return ResolutionResult(status=ResolutionStatus.NOT_FOUND, jid=jid)

    if isinstance(query, ExactSessionQuery):
        if len(candidates) > 1:
            logger.warning("Directory holds %d sessions for %s", len(candidates), jid)
            return ResolutionResult(
                status=ResolutionStatus.AMBIGUOUS, jid=jid, candidates=candidates
            )
        return ResolutionResult(
            status=ResolutionStatus.IDENTIFIED,
            jid=jid,
            handle=candidates[0].handle,
            candidates=candidates,
        )

    return ResolutionResult(status=ResolutionStatus.CANDIDATES, jid=jid, candidates=candidates)
