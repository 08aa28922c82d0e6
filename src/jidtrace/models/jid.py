"""JID value type."""

from __future__ import annotations

from dataclasses import dataclass

Segment = str | bytes


def _text(segment: Segment) -> str:
    return segment.decode("utf-8") if isinstance(segment, bytes) else segment


@dataclass(frozen=True)
class Jid:
    """A structured ``user@domain[/resource]`` identifier.

    A JID without a resource is *bare*, one with a resource is *full*.
    Equality and hashing are structural.  Segments are either all ``str``
    or all ``bytes`` depending on the configured
    :class:`~jidtrace.models.enums.StringType`.

    Attributes:
        user: Local part.
        domain: Server domain.
        resource: Resource of a specific connection, ``None`` for a bare JID.
    """

    user: Segment
    domain: Segment
    resource: Segment | None = None

    @property
    def is_full(self) -> bool:
        return self.resource is not None

    @property
    def is_bare(self) -> bool:
        return self.resource is None

    def bare(self) -> Jid:
        """Return this JID without its resource."""
        if self.resource is None:
            return self
        return Jid(self.user, self.domain)

    def matches(self, other: Jid) -> bool:
        """Whether *other* is a session address this JID designates.

        A bare JID designates every resource of the same user and domain;
        a full JID designates only itself.
        """
        if self.resource is None:
            return (self.user, self.domain) == (other.user, other.domain)
        return self == other

    def __str__(self) -> str:
        text = f"{_text(self.user)}@{_text(self.domain)}"
        if self.resource is not None:
            text += f"/{_text(self.resource)}"
        return text
