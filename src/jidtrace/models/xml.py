"""Minimal XML stanza model carried by trace events."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class XmlCData:
    """Character data between elements."""

    data: str


@dataclass(frozen=True)
class XmlElement:
    """A parsed XML element (stanza or stanza child).

    Attributes:
        name: Qualified element name, e.g. ``"iq"`` or ``"stream:features"``.
        attrs: Attribute mapping.
        children: Child elements and character data in document order.
    """

    name: str
    attrs: Mapping[str, str] = field(default_factory=dict)
    children: tuple[XmlNode, ...] = ()

    def get_attr(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name, default)

    def elements(self) -> Iterator[XmlElement]:
        """Iterate over child elements, skipping character data."""
        for child in self.children:
            if isinstance(child, XmlElement):
                yield child

    def find(self, name: str) -> XmlElement | None:
        """Return the first child element called *name*."""
        for child in self.elements():
            if child.name == name:
                return child
        return None

    @property
    def text(self) -> str:
        """Concatenated character data of direct children."""
        return "".join(c.data for c in self.children if isinstance(c, XmlCData))


XmlNode = XmlElement | XmlCData
