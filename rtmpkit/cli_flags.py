"""Command-line flags of the RTMP server and their validation."""

from __future__ import annotations

import json
import re
import sys
from collections import deque
from dataclasses import dataclass, field
from typing import Sequence
from urllib.parse import SplitResult, urlsplit

PROGRAM = "rtmp-server"

_VALID_LOG_LEVELS = ("debug", "info", "warn", "error")
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class FlagError(ValueError):
    """Raised when the command line cannot be parsed or fails validation."""


@dataclass
class CliConfig:
    """Flag values as supplied by the user."""

    listen_addr: str = ":1935"
    log_level: str = "info"
    record_all: bool = False
    record_dir: str = "recordings"
    chunk_size: int = 4096
    show_version: bool = False
    relay_destinations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _FlagSpec:
    name: str
    attr: str
    kind: str  # "string", "bool", "uint" or "list"
    usage: str


_FLAGS = {
    spec.name: spec
    for spec in (
        _FlagSpec("listen", "listen_addr", "string",
                  "TCP listen address (e.g. :1935 or 0.0.0.0:1935)"),
        _FlagSpec("log-level", "log_level", "string",
                  "Log level: debug|info|warn|error"),
        _FlagSpec("record-all", "record_all", "bool",
                  "Enable recording of all streams to -record-dir"),
        _FlagSpec("record-dir", "record_dir", "string",
                  "Directory to write FLV recordings"),
        _FlagSpec("chunk-size", "chunk_size", "uint",
                  "Initial outbound chunk size"),
        _FlagSpec("version", "show_version", "bool",
                  "Print version and exit"),
        _FlagSpec("relay-to", "relay_destinations", "list",
                  "RTMP destination URL (can be specified multiple times)"),
    )
}


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _usage_text() -> str:
    defaults = CliConfig()
    lines = [f"Usage of {PROGRAM}:"]
    for name in sorted(_FLAGS):
        spec = _FLAGS[name]
        type_name = {"string": " string", "uint": " uint", "list": " value"}.get(spec.kind, "")
        lines.append(f"  -{name}{type_name}")
        default = getattr(defaults, spec.attr)
        note = ""
        if spec.kind == "string" and default:
            note = f" (default {_quote(default)})"
        elif spec.kind == "uint" and default:
            note = f" (default {default})"
        lines.append(f"    \t{spec.usage}{note}")
    return "\n".join(lines) + "\n"


def _syntax_error(message: str) -> FlagError:
    sys.stdout.write(message + "\n")
    sys.stdout.write(_usage_text())
    return FlagError(message)


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(text)


def _parse_uint(text: str) -> int:
    if not text or text != text.strip() or text[0] in "+-":
        raise ValueError(text)
    if re.fullmatch(r"0[0-7]+", text):
        value = int(text, 8)
    else:
        value = int(text, 0)
    if value >= 1 << 64:
        raise ValueError(text)
    return value


def parse_flags(args: Sequence[str]) -> CliConfig:
    """Parse server flags and validate them.

    Flags take the single- or double-dash form, with the value either joined
    by ``=`` or as the next argument. Parsing stops at the first non-flag
    argument or at ``--``. Raises FlagError on any problem.
    """
    cfg = CliConfig()
    relay: list[str] = []
    pending = deque(args)

    while pending:
        arg = pending[0]
        if len(arg) < 2 or arg[0] != "-":
            break
        pending.popleft()
        if arg == "--":
            break
        body = arg[2:] if arg.startswith("--") else arg[1:]
        if not body or body[0] in "-=":
            raise _syntax_error(f"bad flag syntax: {arg}")
        name, has_value, value = body.partition("=")

        spec = _FLAGS.get(name)
        if spec is None:
            if name in ("help", "h"):
                sys.stdout.write(_usage_text())
                raise FlagError("flag: help requested")
            raise _syntax_error(f"flag provided but not defined: -{name}")

        if spec.kind == "bool":
            if has_value:
                try:
                    setattr(cfg, spec.attr, _parse_bool(value))
                except ValueError:
                    raise _syntax_error(
                        f"invalid boolean value {_quote(value)} for -{name}: parse error"
                    ) from None
            else:
                setattr(cfg, spec.attr, True)
            continue

        if not has_value:
            if not pending:
                raise _syntax_error(f"flag needs an argument: -{name}")
            value = pending.popleft()

        if spec.kind == "uint":
            try:
                setattr(cfg, spec.attr, _parse_uint(value))
            except ValueError:
                raise _syntax_error(
                    f"invalid value {_quote(value)} for flag -{name}: parse error"
                ) from None
        elif spec.kind == "list":
            relay.append(value)
        else:
            setattr(cfg, spec.attr, value)

    cfg.relay_destinations = relay

    if cfg.chunk_size == 0 or cfg.chunk_size > 65536:
        raise FlagError("chunk-size must be between 1 and 65536")

    if cfg.log_level not in _VALID_LOG_LEVELS:
        raise FlagError(f"invalid log-level {_quote(cfg.log_level)}")

    for dest in cfg.relay_destinations:
        try:
            validate_relay_destination(dest)
        except ValueError as exc:
            raise FlagError(f"invalid relay destination {_quote(dest)}: {exc}") from exc

    return cfg


def validate_relay_destination(raw_url: str) -> SplitResult:
    """Check that ``raw_url`` is an rtmp:// URL with a host; return its parts.

    Raises ValueError when it is not.
    """
    try:
        parsed = urlsplit(raw_url)
        parsed.port  # rejects a malformed port
    except ValueError as exc:
        raise ValueError(f"invalid URL: {exc}") from exc

    if parsed.scheme != "rtmp":
        raise ValueError(f"URL must use rtmp:// scheme, got {parsed.scheme}")

    if not parsed.netloc:
        raise ValueError("URL must have a host")

    return parsed