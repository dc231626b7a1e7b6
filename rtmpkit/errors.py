"""Error types for the RTMP protocol layers and helpers to classify them."""

from __future__ import annotations

import asyncio
import concurrent.futures
from datetime import timedelta
from typing import Iterator

__all__ = [
    "RTMPError",
    "ProtocolError",
    "HandshakeError",
    "ChunkError",
    "AMFError",
    "RTMPTimeoutError",
    "is_timeout",
    "is_protocol_error",
]

_BUILTIN_TIMEOUTS = (TimeoutError, asyncio.TimeoutError, concurrent.futures.TimeoutError)


class RTMPError(Exception):
    """Base class for every error raised by this package's protocol code.

    ``op`` names the high-level operation that failed and ``cause`` is the
    underlying exception, if any. The cause is also recorded as
    ``__cause__`` so tracebacks show the full chain.
    """

    kind = "rtmp error"

    def __init__(self, op: str, cause: BaseException | None = None) -> None:
        self.op = op
        self.cause = cause
        self.__cause__ = cause
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.cause is None:
            return f"{self.kind}: {self.op}"
        return f"{self.kind}: {self.op}: {self.cause}"

    def __str__(self) -> str:
        return self._describe()


class _ProtocolLayerError(RTMPError):
    """Marker base shared by every protocol-layer error type."""


class ProtocolError(_ProtocolLayerError):
    """Generic protocol layer error (validation, state, and the like)."""

    kind = "protocol error"


class HandshakeError(_ProtocolLayerError):
    """Handshake violation or failure."""

    kind = "handshake error"


class ChunkError(_ProtocolLayerError):
    """Chunk parsing or serialization violation."""

    kind = "chunk error"


class AMFError(_ProtocolLayerError):
    """Failure in AMF0 encoding or decoding."""

    kind = "amf error"


def _format_duration(seconds: float) -> str:
    if seconds == 0:
        return "0s"
    magnitude = abs(seconds)
    if magnitude >= 1:
        return f"{seconds:g}s"
    if magnitude >= 1e-3:
        return f"{seconds * 1e3:g}ms"
    if magnitude >= 1e-6:
        return f"{seconds * 1e6:g}µs"
    return f"{seconds * 1e9:g}ns"


class RTMPTimeoutError(RTMPError):
    """An operation exceeded a deadline or an idle timeout.

    ``duration`` is kept in seconds; a :class:`datetime.timedelta` is accepted.
    """

    kind = "timeout error"

    def __init__(
        self,
        op: str,
        duration: float | timedelta,
        cause: BaseException | None = None,
    ) -> None:
        if isinstance(duration, timedelta):
            duration = duration.total_seconds()
        self.duration = float(duration)
        super().__init__(op, cause)

    def _describe(self) -> str:
        base = f"{self.kind}: {self.op} (after {_format_duration(self.duration)})"
        if self.cause is not None:
            return f"{base}: {self.cause}"
        return base


def _chain(err: BaseException | None) -> Iterator[BaseException]:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def _reports_timeout(err: BaseException) -> bool:
    probe = getattr(err, "timeout", None)
    if not callable(probe):
        return False
    try:
        return probe() is True
    except TypeError:
        return False


def is_timeout(err: BaseException | None) -> bool:
    """True if ``err`` or any exception in its cause chain is a timeout.

    Recognises :class:`RTMPTimeoutError`, the built-in timeout exceptions and
    any exception exposing a ``timeout()`` method that returns True.
    """
    for link in _chain(err):
        if isinstance(link, (RTMPTimeoutError, *_BUILTIN_TIMEOUTS)):
            return True
        if _reports_timeout(link):
            return True
    return False


def is_protocol_error(err: BaseException | None) -> bool:
    """True if the cause chain of ``err`` holds a protocol-layer error."""
    return any(isinstance(link, _ProtocolLayerError) for link in _chain(err))