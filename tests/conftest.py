"""Shared test fixtures: sample c2s traffic and a populated directory."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from jidtrace.models.enums import StreamEventKind, TraceDirection
from jidtrace.models.jid import Jid
from jidtrace.models.trace import (
    END_OF_TRACE,
    ElementSent,
    OpaqueTrace,
    RouteReceived,
    RouteSent,
    StanzaReceived,
    TextSent,
    TraceEvent,
)
from jidtrace.models.xml import XmlCData, XmlElement
from jidtrace.session.directory import InMemorySessionDirectory
from jidtrace.tracing.mock import MockTraceAttachment

STREAM_HEADER = (
    "<?xml version='1.0'?><stream:stream xmlns='jabber:client' "
    "xmlns:stream='http://etherx.jabber.org/streams' id='2549873769' "
    "from='localhost' version='1.0' xml:lang='en'>"
)
STREAM_FEATURES = (
    "<stream:features><mechanisms xmlns='urn:ietf:params:xml:ns:xmpp-sasl'>"
    "<mechanism>DIGEST-MD5</mechanism><mechanism>PLAIN</mechanism></mechanisms>"
    "<register xmlns='http://jabber.org/features/iq-register'/></stream:features>"
)


def rx_stream_start(handle: str = "c2s-1") -> StanzaReceived:
    return StanzaReceived(
        handle,
        StreamEventKind.STREAM_START,
        attrs={"to": "localhost", "xmlns": "jabber:client", "version": "1.0"},
    )


def rx_stanza(handle: str = "c2s-1", sender: str | None = None) -> StanzaReceived:
    attrs = {"xmlns": "jabber:client", "type": "get", "to": "asd@localhost/x3", "id": "ac6fa"}
    if sender is not None:
        attrs["from"] = sender
    iq = XmlElement(
        "iq",
        attrs,
        (
            XmlCData("\n"),
            XmlElement("query", {"xmlns": "jabber:iq:version"}),
            XmlCData("\n"),
        ),
    )
    return StanzaReceived(handle, StreamEventKind.STREAM_ELEMENT, element=iq)


def rx_stream_end(handle: str = "c2s-1") -> StanzaReceived:
    return StanzaReceived(handle, StreamEventKind.STREAM_END)


def tx_text(handle: str = "c2s-1") -> TextSent:
    return TextSent(handle, STREAM_FEATURES.encode("utf-8"), state={"stream_id": "3635346036"})


def tx_stream_start(handle: str = "c2s-1") -> TextSent:
    return TextSent(handle, STREAM_HEADER, state={"stream_id": "2549873769"})


def tx_stream_end(handle: str = "c2s-1") -> TextSent:
    return TextSent(handle, "</stream:stream>", state={"stream_id": "3714186711"})


def tx_element(handle: str = "c2s-1", to: str = "alice@localhost/escalus") -> ElementSent:
    presence = XmlElement(
        "presence",
        {"from": "alice@localhost/escalus", "to": to, "xml:lang": "en"},
    )
    return ElementSent(handle, presence, state={"user": "alice"})


def tx_bind_result(handle: str = "c2s-1", jid: str = "alice@localhost/escalus") -> ElementSent:
    bind = XmlElement(
        "bind",
        {"xmlns": "urn:ietf:params:xml:ns:xmpp-bind"},
        (XmlElement("jid", {}, (XmlCData(jid),)),),
    )
    return ElementSent(handle, XmlElement("iq", {"type": "result", "id": "bind_1"}, (bind,)))


def routed_in(handle: str = "c2s-1") -> RouteReceived:
    roster = XmlElement(
        "iq",
        {"id": "ac6aa", "type": "result"},
        (
            XmlElement(
                "query",
                {"xmlns": "jabber:iq:roster"},
                (
                    XmlElement(
                        "item",
                        {"subscription": "both", "name": "qwe@localhost", "jid": "qwe@localhost"},
                    ),
                    XmlElement(
                        "item",
                        {"subscription": "none", "name": "self", "jid": "asd@localhost"},
                    ),
                ),
            ),
        ),
    )
    return RouteReceived(
        handle,
        from_jid=Jid("asd", "localhost"),
        to_jid=Jid("asd", "localhost", "x3"),
        packet=roster,
    )


def routed_out(handle: str = "c2s-1") -> RouteSent:
    message = XmlElement(
        "message",
        {"xml:lang": "en", "type": "chat", "to": "qwe@localhost/x3", "id": "ac99a"},
        (XmlElement("body", {}, (XmlCData("zxc123"),)),),
    )
    return RouteSent(
        handle,
        from_jid=Jid("asd", "localhost", "x3"),
        to_jid=Jid("qwe", "localhost", "x3"),
        packet=message,
        to_handle="c2s-2",
    )


def opaque(handle: str = "c2s-1") -> OpaqueTrace:
    return OpaqueTrace(handle, TraceDirection.INBOUND, payload=("tcp", b"\x00"))


SAMPLES = {
    "rx_stream_start": rx_stream_start,
    "rx_stanza": rx_stanza,
    "rx_stream_end": rx_stream_end,
    "tx_text": tx_text,
    "tx_stream_start": tx_stream_start,
    "tx_stream_end": tx_stream_end,
    "tx_element": tx_element,
    "routed_in": routed_in,
    "routed_out": routed_out,
    "opaque": opaque,
}


@pytest.fixture
def samples() -> dict[str, TraceEvent]:
    """One event of every shape, plus the end-of-trace sentinel."""
    events: dict[str, TraceEvent] = {name: make() for name, make in SAMPLES.items()}
    events["end_of_trace"] = END_OF_TRACE
    return events


@pytest.fixture
def directory() -> InMemorySessionDirectory:
    directory = InMemorySessionDirectory()
    directory.open_session(Jid("alice", "localhost", "phone"), "c2s-1", sid="s1")
    directory.open_session(Jid("alice", "localhost", "laptop"), "c2s-2", sid="s2")
    directory.open_session(Jid("bob", "localhost", "desk"), "c2s-3", sid="s3")
    return directory


@pytest.fixture
def attachment() -> MockTraceAttachment:
    return MockTraceAttachment()


@pytest.fixture
def traffic() -> SimpleNamespace:
    """Builders for sample events, parameterised by connection handle."""
    return SimpleNamespace(**SAMPLES, bind_result=tx_bind_result)
