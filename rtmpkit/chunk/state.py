"""Per chunk stream state for header compression and message reassembly."""

from __future__ import annotations

from dataclasses import dataclass, field

from rtmpkit.chunk.header import ChunkHeader, Message
from rtmpkit.errors import ChunkError

_U32 = 0xFFFFFFFF


@dataclass
class ChunkStreamState:
    """Rolling state of one chunk stream (CSID).

    FMT 0 starts a message with all fields; FMT 1 adds a timestamp delta and
    new length and type; FMT 2 adds a delta only; FMT 3 continues the
    in-flight message or starts a new one with identical fields. Header fields
    persist after a message completes so later compressed headers can reuse
    them.
    """

    csid: int = 0
    last_timestamp: int = 0
    last_msg_length: int = 0
    last_msg_type_id: int = 0
    last_msg_stream_id: int = 0
    _buffer: bytearray = field(default_factory=bytearray, init=False, repr=False, compare=False)
    _bytes_received: int = field(default=0, init=False, repr=False, compare=False)
    _in_progress: bool = field(default=False, init=False, repr=False, compare=False)

    def reset_buffer(self) -> None:
        """Drop the partly assembled payload, keeping the header fields."""
        self._buffer = bytearray()
        self._bytes_received = 0
        self._in_progress = False

    def apply_header(self, h: ChunkHeader | None) -> None:
        """Apply a parsed header; FMT 0 to 2 start a new message.

        Raises ChunkError when the header does not fit the current state.
        """
        if h is None:
            raise ChunkError("state.apply_header", ValueError("nil header"))
        if self.csid == 0:
            self.csid = h.csid
        if self.csid != h.csid:
            raise ChunkError(
                "state.apply_header",
                ValueError(f"csid mismatch: have {self.csid} want {h.csid}"),
            )

        if h.fmt == 0:
            self.last_timestamp = h.timestamp
            self.last_msg_length = h.message_length
            self.last_msg_type_id = h.message_type_id
            self.last_msg_stream_id = h.message_stream_id
            self._start_message()
        elif h.fmt == 1:
            first_message = self.last_msg_length == 0 and self.last_msg_type_id == 0
            if first_message:
                self.last_timestamp = h.timestamp
            else:
                self.last_timestamp = (self.last_timestamp + h.timestamp) & _U32
            self.last_msg_length = h.message_length
            self.last_msg_type_id = h.message_type_id
            self.last_msg_stream_id = h.message_stream_id
            self._start_message()
        elif h.fmt == 2:
            if self.last_msg_stream_id == 0 or self.last_msg_length == 0:
                raise ChunkError("state.apply_header", ValueError("FMT2 without prior state"))
            self.last_timestamp = (self.last_timestamp + h.timestamp) & _U32
            self._start_message()
        elif h.fmt == 3:
            if self.last_msg_length == 0:
                raise ChunkError(
                    "state.apply_header", ValueError("FMT3 without prior header state")
                )
            if not self._in_progress:
                self._start_message()
        else:
            raise ChunkError("state.apply_header", ValueError(f"unsupported fmt {h.fmt}"))

    def _start_message(self) -> None:
        self.reset_buffer()
        self._in_progress = True

    def append_chunk_data(self, data: bytes) -> Message | None:
        """Add chunk payload to the in-flight message.

        Returns the completed Message once the declared length is reached,
        otherwise None. Raises ChunkError when no message is active or the
        data would overflow the declared length.
        """
        if not data:
            return None
        if not self._in_progress:
            raise ChunkError("state.append", ValueError("no active message"))
        if self._bytes_received + len(data) > self.last_msg_length:
            raise ChunkError(
                "state.append",
                ValueError(
                    f"overflow: have {self._bytes_received} + {len(data)} "
                    f"> {self.last_msg_length}"
                ),
            )
        self._buffer += data
        self._bytes_received += len(data)
        if self._bytes_received != self.last_msg_length:
            return None
        msg = Message(
            csid=self.csid,
            timestamp=self.last_timestamp,
            message_length=self.last_msg_length,
            type_id=self.last_msg_type_id,
            message_stream_id=self.last_msg_stream_id,
            payload=bytes(self._buffer),
        )
        self.reset_buffer()
        return msg

    def bytes_remaining(self) -> int:
        """Bytes still needed to finish the in-flight message."""
        if not self._in_progress or self.last_msg_length == 0:
            return 0
        return max(self.last_msg_length - self._bytes_received, 0)