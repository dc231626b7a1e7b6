"""AMF0 scalar value encoding and decoding."""

__all__ = ["scalars"]