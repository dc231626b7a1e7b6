"""Size-classed pool of reusable byte buffers."""

from __future__ import annotations

import threading

SIZE_CLASSES = (128, 4096, 65536)


def capacity(buf) -> int:
    """Size of the storage behind ``buf``: the backing array of a view, else its length."""
    if buf is None:
        return 0
    if isinstance(buf, memoryview):
        backing = buf.obj
        if isinstance(backing, (bytes, bytearray)):
            return len(backing)
        return buf.nbytes
    return len(buf)


class _SizeClass:
    def __init__(self, size: int) -> None:
        self.size = size
        self._zeros = bytes(size)
        self._free: list[bytearray] = []
        self._lock = threading.Lock()

    def acquire(self) -> bytearray:
        with self._lock:
            if self._free:
                return self._free.pop()
        return bytearray(self.size)

    def release(self, block: bytearray) -> None:
        with memoryview(block) as view:
            view[:] = self._zeros
        with self._lock:
            self._free.append(block)


class BufferPool:
    """Hands out writable buffers backed by reusable blocks of fixed sizes.

    ``get`` returns a memoryview of exactly the requested length over a block
    of the smallest fitting size class; requests above the largest class get a
    fresh, unpooled block.
    """

    def __init__(self, size_classes=SIZE_CLASSES) -> None:
        self._classes = [_SizeClass(size) for size in sorted(size_classes)]

    def get(self, size: int) -> memoryview:
        if size <= 0:
            return memoryview(bytearray())
        for size_class in self._classes:
            if size <= size_class.size:
                return memoryview(size_class.acquire())[:size]
        return memoryview(bytearray(size))

    def put(self, buf) -> None:
        """Return ``buf`` for reuse if its backing block matches a size class.

        The block is zeroed first. Anything else is silently dropped.
        """
        if buf is None:
            return
        backing = buf.obj if isinstance(buf, memoryview) else buf
        if not isinstance(backing, bytearray):
            return
        for size_class in self._classes:
            if len(backing) == size_class.size:
                size_class.release(backing)
                return


_default_pool = BufferPool()


def get(size: int) -> memoryview:
    """Acquire a buffer from the shared default pool."""
    return _default_pool.get(size)


def put(buf) -> None:
    """Release a buffer back to the shared default pool."""
    _default_pool.put(buf)