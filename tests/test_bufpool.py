from concurrent.futures import ThreadPoolExecutor

import pytest

from rtmpkit import bufpool
from rtmpkit.bufpool import BufferPool, capacity


@pytest.mark.parametrize(
    "request_size, expect_cap",
    [
        (64, 128),
        (128, 128),
        (1024, 4096),
        (5000, 65536),
        (131072, 131072),
        (0, 0),
    ],
)
def test_get_returns_sized_buffer(request_size, expect_cap):
    pool = BufferPool()
    buf = pool.get(request_size)
    assert len(buf) == request_size
    assert capacity(buf) == expect_cap


def test_negative_size_returns_empty_buffer():
    buf = BufferPool().get(-5)
    assert len(buf) == 0
    assert capacity(buf) == 0


def test_put_reuses_buffer():
    pool = BufferPool()
    buf = pool.get(200)
    assert len(buf) == 200
    buf[0] = 42
    backing = buf.obj
    pool.put(buf)

    reused = pool.get(200)
    assert len(reused) == 200
    assert capacity(reused) == 4096
    assert reused.obj is backing
    assert bytes(reused) == bytes(200)
    assert bytes(backing) == bytes(4096)


def test_put_discards_foreign_sizes():
    pool = BufferPool()
    foreign = bytearray(100)
    pool.put(foreign)
    buf = pool.get(64)
    assert buf.obj is not foreign
    assert capacity(buf) == 128


def test_put_accepts_exact_class_bytearray():
    pool = BufferPool()
    block = bytearray(b"\x07" * 128)
    pool.put(block)
    buf = pool.get(10)
    assert buf.obj is block
    assert bytes(block) == bytes(128)


def test_oversized_buffers_are_not_pooled():
    pool = BufferPool()
    big = pool.get(131072)
    pool.put(big)
    again = pool.get(131072)
    assert again.obj is not big.obj


def test_buffers_are_writable():
    buf = BufferPool().get(4)
    buf[:] = b"abcd"
    assert bytes(buf) == b"abcd"


def test_capacity_of_plain_bytes():
    assert capacity(b"abc") == 3
    assert capacity(None) == 0


def test_default_pool_functions():
    buf = bufpool.get(300)
    assert len(buf) == 300
    assert capacity(buf) == 4096
    buf[5] = 9
    bufpool.put(buf)
    reused = bufpool.get(300)
    assert all(b == 0 for b in reused)


def test_concurrent_access():
    pool = BufferPool()

    def worker(size):
        observed = set()
        for i in range(1000):
            buf = pool.get(size)
            observed.add((len(buf), capacity(buf)))
            buf[:] = bytes([i % 256]) * size
            pool.put(buf)
        return observed

    expected = {64: 128, 512: 4096, 2048: 4096, 8192: 65536, 40000: 65536}
    sizes = list(expected)
    with ThreadPoolExecutor(max_workers=len(sizes)) as executor:
        results = list(executor.map(worker, sizes))
    for size, observed in zip(sizes, results):
        assert observed == {(size, expected[size])}