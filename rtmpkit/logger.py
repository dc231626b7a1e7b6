"""Global structured logger writing one JSON object per line."""

from __future__ import annotations

import copy
import enum
import json
import os
import sys
import threading
import time
from datetime import datetime
from typing import Any, Sequence, TextIO

ENV_LOG_LEVEL = "RTMP_LOG_LEVEL"
_FLAG_PREFIX = "-log.level="


class Level(enum.IntEnum):
    DEBUG = -4
    INFO = 0
    WARN = 4
    ERROR = 8


_ALIASES = {
    "debug": Level.DEBUG,
    "info": Level.INFO,
    "": Level.INFO,
    "warn": Level.WARN,
    "warning": Level.WARN,
    "error": Level.ERROR,
    "err": Level.ERROR,
}


def parse_level(text: str) -> Level | None:
    """Map a level name (case-insensitive, aliases allowed) to a Level, or None."""
    return _ALIASES.get(text.strip().lower())


class _LevelControl:
    """Mutable level shared by a logger and everything derived from it."""

    def __init__(self, value: Level) -> None:
        self.value = value


class _Sink:
    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self._lock = threading.Lock()

    def write_line(self, line: str) -> None:
        with self._lock:
            self.stream.write(line + "\n")
            flush = getattr(self.stream, "flush", None)
            if callable(flush):
                flush()


class StructuredLogger:
    """Logger emitting JSON records with ``time``, ``level``, ``msg`` and fields."""

    def __init__(self, stream: TextIO, level: _LevelControl | None = None) -> None:
        self._sink = _Sink(stream)
        self._level = level if level is not None else _LevelControl(Level.INFO)
        self._fields: dict[str, Any] = {}

    def with_fields(self, **kwargs: Any) -> "StructuredLogger":
        """Return a logger that adds ``kwargs`` to every record."""
        child = copy.copy(self)
        child._fields = {**self._fields, **kwargs}
        return child

    def _emit(self, level: Level, msg: str, fields: dict[str, Any]) -> None:
        if level < self._level.value:
            return
        record = {
            "time": datetime.now().astimezone().isoformat(timespec="microseconds"),
            "level": level.name,
            "msg": msg,
            **self._fields,
            **fields,
        }
        self._sink.write_line(json.dumps(record, default=str, ensure_ascii=False))

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._emit(Level.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._emit(Level.INFO, msg, kwargs)

    def warn(self, msg: str, **kwargs: Any) -> None:
        self._emit(Level.WARN, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._emit(Level.ERROR, msg, kwargs)


class _GlobalState:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.level = _LevelControl(Level.INFO)
        self.logger: StructuredLogger | None = None


_state = _GlobalState()


def _detect_level(argv: Sequence[str] | None = None, environ=None) -> Level:
    """Initial level: ``-log.level=`` argument, then RTMP_LOG_LEVEL, then info."""
    argv = sys.argv[1:] if argv is None else argv
    environ = os.environ if environ is None else environ
    flag_value = ""
    for arg in argv:
        if arg.startswith(_FLAG_PREFIX):
            flag_value = arg[len(_FLAG_PREFIX):]
    if flag_value.strip():
        parsed = parse_level(flag_value)
        if parsed is not None:
            return parsed
    env_value = environ.get(ENV_LOG_LEVEL, "")
    if env_value:
        parsed = parse_level(env_value)
        if parsed is not None:
            return parsed
    return Level.INFO


def init() -> None:
    """Create the global logger once; later calls do nothing."""
    with _state.lock:
        if _state.logger is None:
            _state.level.value = _detect_level()
            _state.logger = StructuredLogger(sys.stdout, _state.level)


def set_level(level: str) -> None:
    """Change the runtime level; raises ValueError for an unknown name."""
    init()
    parsed = parse_level(level)
    if parsed is None:
        raise ValueError(f"invalid log level: {level}")
    _state.level.value = parsed


def current_level() -> str:
    """Name of the current runtime level, e.g. ``"INFO"``."""
    init()
    return _state.level.value.name


def use_writer(stream: TextIO) -> None:
    """Send global log output to ``stream``, keeping the current level."""
    init()
    with _state.lock:
        _state.logger = StructuredLogger(stream, _state.level)


def get_logger() -> StructuredLogger:
    init()
    assert _state.logger is not None
    return _state.logger


def debug(msg: str, **kwargs: Any) -> None:
    get_logger().debug(msg, **kwargs)


def info(msg: str, **kwargs: Any) -> None:
    get_logger().info(msg, **kwargs)


def warn(msg: str, **kwargs: Any) -> None:
    get_logger().warn(msg, **kwargs)


def error(msg: str, **kwargs: Any) -> None:
    get_logger().error(msg, **kwargs)


def with_conn(logger: StructuredLogger, conn_id: str, peer_addr: str) -> StructuredLogger:
    """Attach connection identity fields."""
    return logger.with_fields(conn_id=conn_id, peer_addr=peer_addr)


def with_stream(logger: StructuredLogger, stream_key: str) -> StructuredLogger:
    """Attach the stream key."""
    return logger.with_fields(stream_key=stream_key)


def with_message_meta(
    logger: StructuredLogger, msg_type: str, csid: int, msid: int, ts: int
) -> StructuredLogger:
    """Attach message metadata; a zero ``ts`` becomes the current Unix ms, 32-bit wrapped."""
    if ts == 0:
        ts = (time.time_ns() // 1_000_000) & 0xFFFFFFFF
    return logger.with_fields(msg_type=msg_type, csid=csid, msid=msid, timestamp=ts)