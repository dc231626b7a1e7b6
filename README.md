# rtmpkit

Pure-Python building blocks for working with the RTMP streaming protocol:

- **AMF0 scalars**: encoding and decoding of numbers, booleans, null and
  short strings on binary streams (`rtmpkit.amf.scalars`).
- **Chunk streams**: parsing and serialising chunk headers (formats 0–3,
  extended timestamps), per-stream reassembly state, a reader that turns
  a byte stream into complete messages and a writer that fragments
  messages into chunks with header compression (`rtmpkit.chunk`).
- A small **error hierarchy** for protocol, handshake, chunk, AMF and
  timeout failures (`rtmpkit.errors`).
- A JSON-lines **structured logger** with a runtime-adjustable level
  (`rtmpkit.logger`).
- A size-classed **buffer pool** (`rtmpkit.bufpool`).
- Parsing and validation of RTMP server **command-line flags**
  (`rtmpkit.cli_flags`).

No third-party dependencies are needed.

## AMF0 scalars

```python
import io

from rtmpkit.amf.scalars import decode_number, decode_string, encode_number, encode_string

buf = io.BytesIO()
encode_string(buf, "connect")
encode_number(buf, 1.0)

buf.seek(0)
assert decode_string(buf) == "connect"
assert decode_number(buf) == 1.0
```

The module provides `encode_number` / `decode_number`,
`encode_boolean` / `decode_boolean`, `encode_null` / `decode_null` and
`encode_string` / `decode_string`, plus `read_exact(r, n, op)` for
reading an exact number of bytes. A wrong type marker, a short read or a
string longer than 65535 UTF-8 bytes raises `rtmpkit.errors.AMFError`.
When decoding a boolean, any non-zero data byte counts as true.

## Chunk streams

```python
import io

from rtmpkit.chunk.header import Message
from rtmpkit.chunk.reader import ChunkReader
from rtmpkit.chunk.writer import ChunkWriter

wire = io.BytesIO()
writer = ChunkWriter(wire, 128)
writer.write_message(
    Message(csid=6, timestamp=2000, message_length=300, type_id=9,
            message_stream_id=1, payload=b"\xbb" * 300)
)

wire.seek(0)
reader = ChunkReader(wire, 128)
message = reader.read_message()
assert message.payload == b"\xbb" * 300
```

`ChunkWriter` picks the most compact header format per chunk stream: a
full header (FMT 0) for the first message, a delta-only header (FMT 2)
when only the timestamp changed, and a delta plus length/type header
(FMT 1) otherwise; continuation chunks use FMT 3. A zero
`message_length` is taken from the payload; a length that disagrees with
the payload raises `ValueError`.

`ChunkReader` reassembles interleaved chunk streams and applies an
incoming *Set Chunk Size* control message (type 1 on message stream 0)
by itself. `read_message()` raises `EOFError` when the stream ends
cleanly before a chunk header and `rtmpkit.errors.ChunkError` for
truncated or inconsistent chunks. Iterating over a reader yields
messages until the stream ends.

Both classes have a `chunk_size` property and `set_chunk_size(size)`,
which ignores values outside 1..65536.

Lower-level pieces:

- `rtmpkit.chunk.header.parse_chunk_header(r, prev)` parses one header
  into a `ChunkHeader` (FMT 3 needs the previous header of the same
  chunk stream); errors raise `ChunkError`.
- `rtmpkit.chunk.writer.encode_chunk_header(h, prev)` serialises one
  header; invalid headers raise `ValueError`.
- `rtmpkit.chunk.state.ChunkStreamState` holds per-stream state with
  `apply_header`, `append_chunk_data`, `bytes_remaining` and
  `reset_buffer`.

## Errors

```python
from rtmpkit.errors import HandshakeError, is_protocol_error, is_timeout

err = HandshakeError("server.read", OSError("connection reset"))
assert is_protocol_error(err)
```

`ProtocolError`, `HandshakeError`, `ChunkError` and `AMFError` count as
protocol errors; `RTMPTimeoutError` counts as a timeout, as do the
built-in timeout exceptions and any exception whose `timeout()` method
returns True. Both predicates follow the `__cause__` chain. All errors
derive from `RTMPError` and carry `op` and `cause`.

## Logging

```python
from rtmpkit import logger

logger.set_level("debug")
log = logger.with_stream(logger.with_conn(logger.get_logger(), "c1", "127.0.0.1:50000"), "live/test")
log.info("publish started", codec="h264")
```

Each record is one JSON object per line with `time`, `level`, `msg` and
the attached fields, written to standard output unless `use_writer`
redirects it. The initial level comes from a `-log.level=` command-line
argument, then the `RTMP_LOG_LEVEL` environment variable, and defaults
to `info`. `set_level` raises `ValueError` for an unknown name;
`current_level()` returns the level name, e.g. `"INFO"`.
`with_message_meta` adds `msg_type`, `csid`, `msid` and `timestamp`.

## Buffer pool

```python
from rtmpkit.bufpool import BufferPool, capacity

pool = BufferPool()
buf = pool.get(200)      # 200 usable bytes from the 4096-byte class
assert capacity(buf) == 4096
pool.put(buf)            # zeroed and kept for reuse
```

Size classes are 128, 4096 and 65536 bytes; larger requests get an
unpooled buffer. Module-level `get` and `put` use a shared default pool.

## Server flags

```python
from rtmpkit.cli_flags import parse_flags

cfg = parse_flags(["-listen", ":1935", "-relay-to", "rtmp://localhost/live/key"])
assert cfg.chunk_size == 4096
```

`parse_flags` returns a `CliConfig` and raises `FlagError` for unknown
flags, bad values, a chunk size outside 1..65536, a log level other than
`debug`, `info`, `warn` or `error`, or a relay destination that is not
an `rtmp://` URL with a host. Syntax errors also print the usage text to
standard output. `validate_relay_destination` checks a single URL.

## What this package does not do

- It has no AMF0 object or strict-array codec and no codec for a whole
  sequence of values; only the scalar types above are covered.
- It performs no RTMP handshake, opens no network connections and
  contains no server or client. `parse_flags` only parses options; no
  command is installed that starts a server.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.