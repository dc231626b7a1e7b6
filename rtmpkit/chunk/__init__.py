"""Chunk stream headers, reassembly state, reading and writing."""

__all__ = ["header", "reader", "state", "writer"]