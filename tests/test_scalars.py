import io
import math

import pytest

from rtmpkit.amf.scalars import (
    decode_boolean,
    decode_null,
    decode_number,
    decode_string,
    encode_boolean,
    encode_null,
    encode_number,
    encode_string,
    read_exact,
)
from rtmpkit.errors import AMFError, is_protocol_error

NUMBER_0 = bytes([0x00] + [0x00] * 8)
NUMBER_1_5 = bytes([0x00, 0x3F, 0xF8, 0, 0, 0, 0, 0, 0])
BOOLEAN_TRUE = bytes([0x01, 0x01])
BOOLEAN_FALSE = bytes([0x01, 0x00])
NULL = bytes([0x05])
STRING_TEST = bytes([0x02, 0x00, 0x04]) + b"test"
STRING_EMPTY = bytes([0x02, 0x00, 0x00])


class _FailingWriter:
    def write(self, data):
        raise OSError("broken pipe")


class _TrickleReader:
    def __init__(self, data):
        self._inner = io.BytesIO(data)

    def read(self, n):
        return self._inner.read(min(n, 1))


# Number

def test_encode_number_golden_0():
    buf = io.BytesIO()
    encode_number(buf, 0.0)
    assert buf.getvalue() == NUMBER_0


def test_encode_number_golden_1_5():
    buf = io.BytesIO()
    encode_number(buf, 1.5)
    assert buf.getvalue() == NUMBER_1_5


def test_decode_number_golden_0():
    assert decode_number(io.BytesIO(NUMBER_0)) == 0.0


def test_decode_number_golden_1_5():
    assert decode_number(io.BytesIO(NUMBER_1_5)) == 1.5


@pytest.mark.parametrize("value", [1.0, -1.0, math.inf, -math.inf])
def test_number_edge_cases_round_trip(value):
    buf = io.BytesIO()
    encode_number(buf, value)
    buf.seek(0)
    assert decode_number(buf) == value


def test_number_nan_round_trip():
    buf = io.BytesIO()
    encode_number(buf, math.nan)
    buf.seek(0)
    assert math.isnan(decode_number(buf))


def test_decode_number_invalid_marker():
    bad = bytes([0x02, 0, 0, 0, 0, 0, 0, 0, 0])
    with pytest.raises(AMFError) as info:
        decode_number(io.BytesIO(bad))
    assert info.value.op == "decode.number.marker"


def test_decode_number_short_buffer():
    with pytest.raises(AMFError) as info:
        decode_number(io.BytesIO(bytes([0x00, 0x00, 0x01])))
    assert info.value.op == "decode.number.read"


def test_encode_number_write_failure():
    with pytest.raises(AMFError) as info:
        encode_number(_FailingWriter(), 1.0)
    assert info.value.op == "encode.number.write"
    assert isinstance(info.value.cause, OSError)


# Boolean

@pytest.mark.parametrize("value,golden", [(True, BOOLEAN_TRUE), (False, BOOLEAN_FALSE)])
def test_encode_boolean_golden(value, golden):
    buf = io.BytesIO()
    encode_boolean(buf, value)
    assert buf.getvalue() == golden


@pytest.mark.parametrize("golden,want", [(BOOLEAN_TRUE, True), (BOOLEAN_FALSE, False)])
def test_decode_boolean_golden(golden, want):
    assert decode_boolean(io.BytesIO(golden)) is want


def test_decode_boolean_liberal_true():
    assert decode_boolean(io.BytesIO(bytes([0x01, 0x7F]))) is True


def test_decode_boolean_invalid_marker():
    with pytest.raises(AMFError) as info:
        decode_boolean(io.BytesIO(bytes([0x02, 0x01])))
    assert info.value.op == "decode.boolean.marker"


def test_decode_boolean_short_read_marker_only():
    with pytest.raises(AMFError) as info:
        decode_boolean(io.BytesIO(bytes([0x01])))
    assert info.value.op == "decode.boolean.read"


# Null

def test_encode_null_golden():
    buf = io.BytesIO()
    encode_null(buf)
    assert buf.getvalue() == NULL


def test_decode_null_golden():
    stream = io.BytesIO(NULL)
    assert decode_null(stream) is None
    assert stream.tell() == 1


def test_decode_null_invalid_marker():
    with pytest.raises(AMFError) as info:
        decode_null(io.BytesIO(bytes([0x02])))
    assert info.value.op == "decode.null.marker"


def test_decode_null_short_read():
    with pytest.raises(AMFError) as info:
        decode_null(io.BytesIO(b""))
    assert info.value.op == "decode.null.marker.read"


# String

def test_encode_string_golden_test():
    buf = io.BytesIO()
    encode_string(buf, "test")
    assert buf.getvalue() == STRING_TEST


def test_encode_string_golden_empty():
    buf = io.BytesIO()
    encode_string(buf, "")
    assert buf.getvalue() == STRING_EMPTY


def test_decode_string_golden_test():
    assert decode_string(io.BytesIO(STRING_TEST)) == "test"


def test_decode_string_golden_empty():
    assert decode_string(io.BytesIO(STRING_EMPTY)) == ""


def test_string_round_trip_multibyte():
    text = "世界"
    buf = io.BytesIO()
    encode_string(buf, text)
    buf.seek(0)
    assert decode_string(buf) == text


def test_string_max_length():
    text = "a" * 65535
    buf = io.BytesIO()
    encode_string(buf, text)
    buf.seek(0)
    assert decode_string(buf) == text


def test_string_too_long():
    with pytest.raises(AMFError) as info:
        encode_string(io.BytesIO(), "b" * 65536)
    assert info.value.op == "encode.string.length"


def test_decode_string_invalid_marker():
    with pytest.raises(AMFError) as info:
        decode_string(io.BytesIO(bytes([0x00, 0x00, 0x00])))
    assert info.value.op == "decode.string.marker"


def test_decode_string_short_length():
    with pytest.raises(AMFError) as info:
        decode_string(io.BytesIO(bytes([0x02, 0x00])))
    assert info.value.op == "decode.string.length.read"


def test_decode_string_truncated_body():
    with pytest.raises(AMFError) as info:
        decode_string(io.BytesIO(bytes([0x02, 0x00, 0x04]) + b"te"))
    assert info.value.op == "decode.string.read"


# read_exact

def test_read_exact_collects_partial_reads():
    assert read_exact(_TrickleReader(b"abcdef"), 4, "op") == b"abcd"


def test_read_exact_short_raises_protocol_error():
    with pytest.raises(AMFError) as info:
        read_exact(io.BytesIO(b"ab"), 4, "some.op")
    assert info.value.op == "some.op"
    assert is_protocol_error(info.value)


def test_read_exact_zero():
    assert read_exact(io.BytesIO(b""), 0, "op") == b""


def test_decode_from_trickling_stream():
    assert decode_number(_TrickleReader(NUMBER_1_5)) == 1.5