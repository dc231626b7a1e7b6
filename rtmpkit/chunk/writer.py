"""Chunk header serialization and fragmentation of messages into chunks."""

from __future__ import annotations

from typing import BinaryIO

from rtmpkit.chunk.header import EXTENDED_TIMESTAMP_MARKER, ChunkHeader, Message

DEFAULT_CHUNK_SIZE = 128
MAX_CHUNK_SIZE = 65536

_U32 = 0xFFFFFFFF
_MESSAGE_HEADER_SIZES = {0: 11, 1: 7, 2: 3, 3: 0}


def _encode_basic_header(fmt_value: int, csid: int) -> bytes:
    """Encode the 1 to 3 byte basic header for ``fmt_value`` and ``csid``."""
    if not 0 <= fmt_value <= 3:
        raise ValueError(f"invalid fmt {fmt_value}")
    if csid < 2:
        raise ValueError(f"invalid csid {csid} (must be >=2)")
    marker = fmt_value << 6
    if csid <= 63:
        return bytes((marker | csid,))
    if csid <= 319:
        return bytes((marker, csid - 64))
    if csid <= 65599:
        value = csid - 64
        return bytes((marker | 1, value & 0xFF, value >> 8))
    raise ValueError(f"csid {csid} out of range")


def encode_chunk_header(h: ChunkHeader | None, prev: ChunkHeader | None = None) -> bytes:
    """Serialize the header bytes (no payload) of one chunk.

    For FMT 0 the timestamp is absolute, for FMT 1 and 2 it is a delta. FMT 3
    needs ``prev`` of the same chunk stream and repeats its extended
    timestamp if it had one. Raises ValueError for an invalid header.
    """
    if h is None:
        raise ValueError("nil header")

    if h.fmt in (0, 1, 2):
        ts_field = h.timestamp
        need_extended = h.timestamp >= EXTENDED_TIMESTAMP_MARKER
    elif h.fmt == 3:
        if prev is None or prev.csid != h.csid:
            raise ValueError(f"FMT3 requires previous header for CSID {h.csid}")
        ts_field = prev.timestamp
        need_extended = (
            prev.timestamp >= EXTENDED_TIMESTAMP_MARKER or prev.has_extended_timestamp
        )
    else:
        raise ValueError(f"unsupported fmt {h.fmt}")

    out = bytearray(_encode_basic_header(h.fmt, h.csid))

    if h.fmt != 3:
        short_ts = EXTENDED_TIMESTAMP_MARKER if need_extended else ts_field
        out += (short_ts & 0xFFFFFF).to_bytes(3, "big")
        if h.fmt in (0, 1):
            out += (h.message_length & 0xFFFFFF).to_bytes(3, "big")
            out.append(h.message_type_id & 0xFF)
        if h.fmt == 0:
            out += (h.message_stream_id & _U32).to_bytes(4, "little")

    if need_extended:
        out += (ts_field & _U32).to_bytes(4, "big")
    return bytes(out)


class ChunkWriter:
    """Writes messages as chunks, choosing the most compact header format.

    The first message on a chunk stream uses FMT 0; later ones use FMT 2 when
    only the timestamp changed and FMT 1 otherwise. Continuation chunks use
    FMT 3. Not safe for concurrent use.
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._stream = stream
        self._chunk_size = chunk_size or DEFAULT_CHUNK_SIZE
        self._last_headers: dict[int, ChunkHeader] = {}

    @property
    def chunk_size(self) -> int:
        """Current outbound chunk size (payload bytes per chunk)."""
        return self._chunk_size

    def set_chunk_size(self, size: int) -> None:
        """Change the outbound chunk size; values outside 1..65536 are ignored."""
        if 1 <= size <= MAX_CHUNK_SIZE:
            self._chunk_size = size

    def encode_header_only(self, h: ChunkHeader, prev: ChunkHeader | None = None) -> int:
        """Write only the encoded header of ``h``; return the number of bytes written."""
        data = encode_chunk_header(h, prev)
        self._stream.write(data)
        return len(data)

    def write_message(self, msg: Message | None) -> None:
        """Fragment ``msg`` into chunks and write them.

        A zero ``message_length`` is taken from the payload. Raises ValueError
        if the declared length and the payload disagree.
        """
        if self._stream is None:
            raise ValueError("writer: nil underlying writer")
        if msg is None:
            raise ValueError("writer: nil message")
        payload = bytes(msg.payload)
        length = msg.message_length or len(payload)
        if length != len(payload):
            raise ValueError(
                f"writer: payload length {len(payload)} != declared {length}"
            )
        size = self._chunk_size or DEFAULT_CHUNK_SIZE

        prev = self._last_headers.get(msg.csid)
        fmt_value = 0
        timestamp = msg.timestamp
        if prev is not None:
            same_shape = (
                length == prev.message_length
                and msg.type_id == prev.message_type_id
                and msg.message_stream_id == prev.message_stream_id
            )
            fmt_value = 2 if same_shape else 1
            timestamp = (msg.timestamp - prev.timestamp) & _U32

        first = ChunkHeader(
            fmt=fmt_value,
            csid=msg.csid,
            timestamp=timestamp,
            message_length=length,
            message_type_id=msg.type_id,
            message_stream_id=msg.message_stream_id,
        )
        if msg.timestamp >= EXTENDED_TIMESTAMP_MARKER:
            first.has_extended_timestamp = True
            if fmt_value in (1, 2):
                first.timestamp = msg.timestamp

        header = encode_chunk_header(first, prev)
        self._stream.write(header + payload[:size])

        self._last_headers[msg.csid] = ChunkHeader(
            fmt=first.fmt,
            csid=msg.csid,
            timestamp=msg.timestamp,
            message_length=length,
            message_type_id=msg.type_id,
            message_stream_id=msg.message_stream_id,
            has_extended_timestamp=first.has_extended_timestamp,
        )

        continuation = encode_chunk_header(ChunkHeader(fmt=3, csid=msg.csid), first)
        for start in range(size, length, size):
            self._stream.write(continuation + payload[start:start + size])