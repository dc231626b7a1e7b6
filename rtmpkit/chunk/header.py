"""Chunk header parsing (basic header, message header, extended timestamp)."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import BinaryIO

from rtmpkit.errors import ChunkError

EXTENDED_TIMESTAMP_MARKER = 0xFFFFFF

_MESSAGE_HEADER_SIZES = {0: 11, 1: 7, 2: 3, 3: 0}


@dataclass
class ChunkHeader:
    """One parsed chunk header, not including the chunk data.

    For FMT 1 and 2 ``timestamp`` holds the delta (``is_delta`` is True).
    ``extended_timestamp_value`` holds the 32-bit value that followed the
    message header when ``has_extended_timestamp`` is set. ``header_bytes``
    counts every byte the header took on the wire.
    """

    fmt: int = 0
    csid: int = 0
    timestamp: int = 0
    message_length: int = 0
    message_type_id: int = 0
    message_stream_id: int = 0
    has_extended_timestamp: bool = False
    extended_timestamp_value: int = 0
    is_delta: bool = False
    header_bytes: int = 0


@dataclass
class Message:
    """A fully reassembled message."""

    csid: int = 0
    timestamp: int = 0
    message_length: int = 0
    type_id: int = 0
    message_stream_id: int = 0
    payload: bytes = b""


def _read_exact(r: BinaryIO, n: int, op: str) -> bytes:
    data = bytearray()
    while len(data) < n:
        try:
            piece = r.read(n - len(data))
        except OSError as exc:
            raise ChunkError(op, exc) from exc
        if not piece:
            break
        data += piece
    if len(data) < n:
        raise ChunkError(op, EOFError("unexpected EOF" if data else "EOF"))
    return bytes(data)


def _parse_basic_header(r: BinaryIO) -> tuple[int, int, int]:
    """Return (fmt, csid, bytes consumed) for the 1 to 3 byte basic header."""
    first = _read_exact(r, 1, "header.basic")[0]
    fmt_value = first >> 6
    raw = first & 0x3F
    if raw == 0:
        extra = _read_exact(r, 1, "header.basic.2byte")
        return fmt_value, extra[0] + 64, 2
    if raw == 1:
        extra = _read_exact(r, 2, "header.basic.3byte")
        return fmt_value, extra[0] + 64 + (extra[1] << 8), 3
    return fmt_value, raw, 1


def _read_extended(r: BinaryIO, h: ChunkHeader, op: str) -> None:
    value = int.from_bytes(_read_exact(r, 4, op), "big")
    h.header_bytes += 4
    h.has_extended_timestamp = True
    h.extended_timestamp_value = value
    h.timestamp = value


def parse_chunk_header(r: BinaryIO, prev: ChunkHeader | None = None) -> ChunkHeader:
    """Parse one chunk header from ``r``.

    ``prev`` is the previous header of the same chunk stream; FMT 3 needs it
    and fails without it, FMT 2 inherits length, type and stream id from it
    when it is given. Raises ChunkError on short reads.
    """
    fmt_value, csid, basic_bytes = _parse_basic_header(r)

    if fmt_value == 3:
        if prev is None or prev.csid != csid:
            raise ChunkError(
                "header.message.fmt3",
                ValueError(f"missing previous header for CSID {csid}"),
            )
        h = dataclasses.replace(prev, fmt=3, header_bytes=basic_bytes)
        if prev.has_extended_timestamp:
            _read_extended(r, h, "header.extended_timestamp.fmt3")
        return h

    h = ChunkHeader(fmt=fmt_value, csid=csid, header_bytes=basic_bytes)
    size = _MESSAGE_HEADER_SIZES[fmt_value]
    mh = _read_exact(r, size, f"header.message.fmt{fmt_value}")
    h.header_bytes += size
    h.timestamp = int.from_bytes(mh[0:3], "big")
    h.is_delta = fmt_value != 0
    if fmt_value in (0, 1):
        h.message_length = int.from_bytes(mh[3:6], "big")
        h.message_type_id = mh[6]
    if fmt_value == 0:
        h.message_stream_id = int.from_bytes(mh[7:11], "little")
    if h.timestamp == EXTENDED_TIMESTAMP_MARKER:
        _read_extended(r, h, f"header.extended_timestamp.fmt{fmt_value}")
    if fmt_value == 2 and prev is not None and prev.csid == csid:
        h.message_length = prev.message_length
        h.message_type_id = prev.message_type_id
        h.message_stream_id = prev.message_stream_id
    return h