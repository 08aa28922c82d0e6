"""Tracer configuration."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from jidtrace.models.enums import StringType, TraceFlag

ENV_PREFIX = "JIDTRACE_"


class TraceConfig(BaseModel):
    """Configuration for a :class:`~jidtrace.tracing.tracer.Tracer`.

    Attributes:
        string_type: Whether parsed JID segments are ``str`` or ``bytes``.
            Must match the representation used by the session directory;
            parsing and comparison rules are the same for both.
        default_filter: Filter used when a request gives none, in the plain
            data form accepted by :func:`~jidtrace.filters.from_spec`.
        max_buffered_events: Events kept per unidentified connection while
            correlating a new session.  Oldest events are dropped first.
        default_nodes: Nodes to watch for new connections when a request
            names none.  Empty means the local node only.
        default_flags: Activity the attachment traces when a request gives
            no flags.  Message passing only by default.
    """

    string_type: StringType = StringType.STR
    default_filter: str | dict[str, Any] = "raw"
    max_buffered_events: int = Field(default=1000, ge=1)
    default_nodes: list[str] = Field(default_factory=list)
    default_flags: list[TraceFlag] = Field(default_factory=lambda: [TraceFlag.MESSAGES])

    @field_validator("default_filter", mode="before")
    @classmethod
    def _decode_filter(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lstrip().startswith("{"):
            return json.loads(value)
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TraceConfig:
        """Build a config from ``JIDTRACE_*`` environment variables.

        Recognised: ``JIDTRACE_STRING_TYPE``, ``JIDTRACE_DEFAULT_FILTER``
        (predicate name or JSON), ``JIDTRACE_MAX_BUFFERED_EVENTS``,
        ``JIDTRACE_DEFAULT_NODES`` and ``JIDTRACE_DEFAULT_FLAGS`` (both
        comma separated).  Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if value := env.get(f"{ENV_PREFIX}STRING_TYPE"):
            values["string_type"] = value
        if value := env.get(f"{ENV_PREFIX}DEFAULT_FILTER"):
            values["default_filter"] = value
        if value := env.get(f"{ENV_PREFIX}MAX_BUFFERED_EVENTS"):
            values["max_buffered_events"] = value
        if value := env.get(f"{ENV_PREFIX}DEFAULT_NODES"):
            values["default_nodes"] = _split(value)
        if value := env.get(f"{ENV_PREFIX}DEFAULT_FLAGS"):
            values["default_flags"] = _split(value)
        return cls(**values)


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]
