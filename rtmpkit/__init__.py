"""Building blocks for the RTMP protocol: AMF0 scalars, chunk streams, errors, logging, buffers and flags."""

__version__ = "0.1.0"

__all__ = ["amf", "bufpool", "chunk", "cli_flags", "errors", "logger"]