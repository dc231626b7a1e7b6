"""Reassembly of messages from an interleaved stream of chunks."""

from __future__ import annotations

import io
from typing import BinaryIO, Iterator

from rtmpkit.chunk.header import ChunkHeader, Message, parse_chunk_header
from rtmpkit.chunk.state import ChunkStreamState
from rtmpkit.errors import ChunkError

DEFAULT_CHUNK_SIZE = 128
MAX_CHUNK_SIZE = 65536

_SET_CHUNK_SIZE_TYPE_ID = 1


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


class ChunkReader:
    """Turns a byte stream of chunks into complete messages.

    Keeps per chunk stream state for header compression and applies a Set
    Chunk Size control message (type 1 on message stream 0) as soon as it is
    read. Not safe for concurrent use.
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._stream = stream
        self._chunk_size = chunk_size or DEFAULT_CHUNK_SIZE
        self._states: dict[int, ChunkStreamState] = {}
        self._prev_headers: dict[int, ChunkHeader] = {}

    @property
    def chunk_size(self) -> int:
        """Current inbound chunk size (payload bytes per chunk)."""
        return self._chunk_size

    def set_chunk_size(self, size: int) -> None:
        """Change the inbound chunk size; values outside 1..65536 are ignored."""
        if 1 <= size <= MAX_CHUNK_SIZE:
            self._chunk_size = size

    def _next_header(self) -> ChunkHeader:
        try:
            first = self._stream.read(1)
        except OSError as exc:
            raise ChunkError("reader.basic_header", exc) from exc
        if not first:
            raise EOFError("end of chunk stream")

        raw = first[0] & 0x3F
        if raw == 0:
            extra = _read_exact(self._stream, 1, "reader.basic_header.2byte")
            csid = extra[0] + 64
        elif raw == 1:
            extra = _read_exact(self._stream, 2, "reader.basic_header.3byte")
            csid = extra[0] + 64 + (extra[1] << 8)
        else:
            extra = b""
            csid = raw

        prev = self._prev_headers.get(csid)
        replay = _Replay(first + extra, self._stream)
        h = parse_chunk_header(replay, prev)
        if h.fmt == 1 and prev is not None:
            h.message_stream_id = prev.message_stream_id
        return h

    def read_message(self) -> Message:
        """Read chunks until a whole message is assembled and return it.

        Raises EOFError when the stream ends cleanly before a chunk header,
        and ChunkError for truncated or inconsistent chunks.
        """
        while True:
            h = self._next_header()
            state = self._states.get(h.csid)
            if state is None:
                state = ChunkStreamState(csid=h.csid)
                self._states[h.csid] = state
            state.apply_header(h)
            self._prev_headers[h.csid] = h

            remaining = state.bytes_remaining()
            if remaining == 0:
                msg = state.append_chunk_data(b"")
            else:
                data = _read_exact(
                    self._stream, min(remaining, self._chunk_size), "reader.read_chunk"
                )
                msg = state.append_chunk_data(data)
            if msg is not None:
                self._handle_control(msg)
                return msg

    def __iter__(self) -> Iterator[Message]:
        """Yield messages until the stream ends cleanly."""
        while True:
            try:
                yield self.read_message()
            except EOFError:
                return

    def _handle_control(self, msg: Message) -> None:
        if (
            msg.type_id == _SET_CHUNK_SIZE_TYPE_ID
            and msg.message_stream_id == 0
            and len(msg.payload) >= 4
        ):
            value = int.from_bytes(msg.payload[:4], "big")
            if 0 < value <= MAX_CHUNK_SIZE:
                self.set_chunk_size(value)


class _Replay(io.RawIOBase):
    """Reader that yields already consumed bytes before the underlying stream."""

    def __init__(self, head: bytes, stream: BinaryIO) -> None:
        super().__init__()
        self._head = head
        self._stream = stream

    def readable(self) -> bool:
        return True

    def read(self, n: int = -1) -> bytes:
        if self._head:
            if n is None or n < 0:
                head, self._head = self._head, b""
                return head + self._stream.read()
            head, self._head = self._head[:n], self._head[n:]
            return head
        return self._stream.read(n)