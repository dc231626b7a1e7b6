from datetime import timedelta

import pytest

from rtmpkit.errors import (
    AMFError,
    ChunkError,
    HandshakeError,
    ProtocolError,
    RTMPError,
    RTMPTimeoutError,
    is_protocol_error,
    is_timeout,
)


class FakeTimeoutError(Exception):
    def __str__(self):
        return "fake timeout"

    def timeout(self):
        return True


def _wrap(message, cause):
    err = RuntimeError(message)
    err.__cause__ = cause
    return err


def test_protocol_error_classification():
    root = ValueError("root")
    wrapped = _wrap("adding context", root)
    hs = HandshakeError("server.read", wrapped)
    assert is_protocol_error(hs)
    assert hs.cause is wrapped
    assert hs.__cause__ is wrapped
    assert hs.__cause__.__cause__ is root
    assert isinstance(hs, RTMPError)
    assert hs.op == "server.read"

    assert is_protocol_error(ChunkError("parse.basicHeader"))
    assert is_protocol_error(AMFError("decode.number"))
    assert is_protocol_error(ProtocolError("state.transition", ValueError("invalid state")))


def test_is_timeout():
    root = FakeTimeoutError()
    to = RTMPTimeoutError("handshake.read", 5, root)
    assert is_timeout(to)
    assert not is_protocol_error(to)
    assert is_timeout(TimeoutError("deadline exceeded"))
    assert is_timeout(root)


def test_unwrap_chain_reaches_protocol_error():
    base = EOFError("io EOF")
    l1 = _wrap("read", base)
    l2 = HandshakeError("handshake.read", l1)
    assert l2.cause is l1
    assert l2.cause.__cause__ is base
    outer = _wrap("connection", l2)
    assert is_protocol_error(outer)


def test_raised_from_keeps_classification():
    with pytest.raises(RuntimeError) as info:
        try:
            raise ChunkError("reader.read_chunk")
        except ChunkError as exc:
            raise RuntimeError("session failed") from exc
    assert is_protocol_error(info.value)


def test_timeout_found_through_chain():
    outer = _wrap("dial", RTMPTimeoutError("connect", 1.0))
    assert is_timeout(outer)


def test_none_safety():
    assert not is_protocol_error(None)
    assert not is_timeout(None)


def test_constructor_without_cause():
    ck = ChunkError("parse.msgHeader")
    assert ck.cause is None
    assert str(ck) == "chunk error: parse.msgHeader"


def test_error_strings():
    assert str(ProtocolError("op1")) == "protocol error: op1"
    assert str(HandshakeError("op2")) == "handshake error: op2"
    assert str(ChunkError("op3")) == "chunk error: op3"
    assert str(AMFError("op4")) == "amf error: op4"
    assert str(ProtocolError("op1", ValueError("bad"))) == "protocol error: op1: bad"
    assert str(AMFError("op4", ValueError("short"))) == "amf error: op4: short"


def test_timeout_error_strings_and_classification():
    to = RTMPTimeoutError("op5", timedelta(milliseconds=100))
    assert is_timeout(to)
    assert not is_protocol_error(to)
    assert str(to) == "timeout error: op5 (after 100ms)"
    assert to.duration == pytest.approx(0.1)
    with_cause = RTMPTimeoutError("handshake.read", 5, FakeTimeoutError())
    assert str(with_cause) == "timeout error: handshake.read (after 5s): fake timeout"


def test_negative_predicates():
    assert not is_protocol_error(ValueError("plain"))
    assert not is_timeout(ValueError("plain"))


def test_non_callable_timeout_attribute_is_ignored():
    err = ValueError("plain")
    err.timeout = True
    assert not is_timeout(err)


def test_errors_can_be_raised_and_caught():
    with pytest.raises(HandshakeError, match="handshake error: read C0") as info:
        raise HandshakeError("read C0")
    assert info.value.op == "read C0"
    assert info.value.cause is None
    assert is_protocol_error(info.value)