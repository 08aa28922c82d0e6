"""JID text parsing."""

from __future__ import annotations

import re

from jidtrace.errors import MalformedJidError
from jidtrace.models.enums import StringType
from jidtrace.models.jid import Jid

_SEPARATORS = re.compile(r"[@/]")


def split_jid(text: str) -> list[str]:
    """Split *text* on ``@`` and ``/``, dropping empty tokens."""
    return [token for token in _SEPARATORS.split(text) if token]


def parse_jid(text: str, string_type: StringType | str = StringType.STR) -> Jid:
    """Parse ``user@domain`` or ``user@domain/resource``.

    No normalisation is applied: case and whitespace are preserved.

    Args:
        text: JID as typed by the operator.
        string_type: ``"str"`` keeps segments as text, ``"bytes"`` encodes
            each segment as UTF-8.

    Raises:
        MalformedJidError: If *text* does not split into two or three
            segments.
    """
    tokens = split_jid(text)
    if len(tokens) not in (2, 3):
        raise MalformedJidError(text)
    if StringType(string_type) == StringType.BYTES:
        return Jid(*(token.encode("utf-8") for token in tokens))
    return Jid(*tokens)
