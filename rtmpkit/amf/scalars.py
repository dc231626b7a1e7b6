"""AMF0 scalar values: Number, Boolean, Null and (short) String."""

from __future__ import annotations

import struct
from typing import BinaryIO

from rtmpkit.errors import AMFError

MARKER_NUMBER = 0x00
MARKER_BOOLEAN = 0x01
MARKER_STRING = 0x02
MARKER_NULL = 0x05

MAX_SHORT_STRING = 0xFFFF

_NUMBER = struct.Struct(">Bd")
_STRING_HEADER = struct.Struct(">BH")


def read_exact(r: BinaryIO, n: int, op: str) -> bytes:
    """Read exactly ``n`` bytes from ``r``; raise AMFError(op) on a short read."""
    data = bytearray()
    while len(data) < n:
        try:
            piece = r.read(n - len(data))
        except OSError as exc:
            raise AMFError(op, exc) from exc
        if not piece:
            break
        data += piece
    if len(data) < n:
        raise AMFError(op, EOFError("unexpected EOF" if data else "EOF"))
    return bytes(data)


def _write(w: BinaryIO, data: bytes, op: str) -> None:
    try:
        w.write(data)
    except OSError as exc:
        raise AMFError(op, exc) from exc


def _expect_marker(r: BinaryIO, expected: int, kind: str) -> None:
    marker = read_exact(r, 1, f"decode.{kind}.marker.read")[0]
    if marker != expected:
        raise AMFError(
            f"decode.{kind}.marker",
            ValueError(f"expected 0x{expected:02x} got 0x{marker:02x}"),
        )


def encode_number(w: BinaryIO, v: float) -> None:
    """Write marker 0x00 and a big-endian IEEE 754 double (9 bytes)."""
    _write(w, _NUMBER.pack(MARKER_NUMBER, float(v)), "encode.number.write")


def decode_number(r: BinaryIO) -> float:
    """Read an AMF0 Number."""
    _expect_marker(r, MARKER_NUMBER, "number")
    (value,) = struct.unpack(">d", read_exact(r, 8, "decode.number.read"))
    return value


def encode_boolean(w: BinaryIO, v: bool) -> None:
    """Write marker 0x01 and one byte, 0x01 for true and 0x00 for false."""
    _write(w, bytes((MARKER_BOOLEAN, 0x01 if v else 0x00)), "encode.boolean.write")


def decode_boolean(r: BinaryIO) -> bool:
    """Read an AMF0 Boolean; any non-zero data byte counts as true."""
    _expect_marker(r, MARKER_BOOLEAN, "boolean")
    return read_exact(r, 1, "decode.boolean.read")[0] != 0x00


def encode_null(w: BinaryIO) -> None:
    """Write the single Null marker byte 0x05."""
    _write(w, bytes((MARKER_NULL,)), "encode.null.write")


def decode_null(r: BinaryIO) -> None:
    """Read an AMF0 Null; returns None."""
    _expect_marker(r, MARKER_NULL, "null")
    return None


def encode_string(w: BinaryIO, s: str) -> None:
    """Write marker 0x02, a 2-byte big-endian length and the UTF-8 bytes.

    Strings longer than 65535 bytes raise AMFError.
    """
    body = s.encode("utf-8", "surrogateescape")
    if len(body) > MAX_SHORT_STRING:
        raise AMFError(
            "encode.string.length",
            ValueError(f"string length {len(body)} exceeds 65535"),
        )
    _write(w, _STRING_HEADER.pack(MARKER_STRING, len(body)), "encode.string.write.header")
    if body:
        _write(w, body, "encode.string.write.body")


def decode_string(r: BinaryIO) -> str:
    """Read an AMF0 String."""
    _expect_marker(r, MARKER_STRING, "string")
    (length,) = struct.unpack(">H", read_exact(r, 2, "decode.string.length.read"))
    if length == 0:
        return ""
    return read_exact(r, length, "decode.string.read").decode("utf-8", "surrogateescape")