"""
Tests for the byte-throughput rate limiter.

Pacing is checked with an injected clock and sleep; one test uses the
real clock to check the wall-time lower bound.
"""

import time

import pytest

from web_grab.transfer import RateLimiter


async def chunks_of(*sizes: int):
    """Async source yielding chunks of the given sizes."""
    for size in sizes:
        yield b"x" * size


class FakeClock:
    """Clock that only advances when the limiter sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.mark.asyncio
    async def test_passthrough_when_disabled(self):
        """A rate of 0 yields chunks unchanged and never sleeps."""
        clock = FakeClock()
        limiter = RateLimiter(chunks_of(10, 20, 30), 0, clock=clock, sleep=clock.sleep)

        received = [chunk async for chunk in limiter]

        assert [len(c) for c in received] == [10, 20, 30]
        assert clock.sleeps == []
        assert not limiter.enabled

    @pytest.mark.asyncio
    async def test_bytes_unchanged(self):
        """Limiting never alters the bytes."""
        async def source():
            yield b"hello "
            yield b"world"

        clock = FakeClock()
        limiter = RateLimiter(source(), 1024, clock=clock, sleep=clock.sleep)

        assert b"".join([c async for c in limiter]) == b"hello world"

    @pytest.mark.asyncio
    async def test_sleeps_for_expected_duration(self):
        """Each chunk takes at least n / rate seconds."""
        clock = FakeClock()
        limiter = RateLimiter(chunks_of(1000, 500), 1000, clock=clock, sleep=clock.sleep)

        _ = [chunk async for chunk in limiter]

        assert clock.sleeps == pytest.approx([1.0, 0.5])
        assert limiter.time_slept == pytest.approx(1.5)
        assert limiter.bytes_read == 1500

    @pytest.mark.asyncio
    async def test_no_sleep_when_source_is_slow(self):
        """A source slower than the ceiling is not delayed further."""
        clock = FakeClock()

        async def slow_source():
            for _ in range(3):
                clock.now += 2.0  # network took 2s for 100 bytes
                yield b"x" * 100

        limiter = RateLimiter(slow_source(), 1000, clock=clock, sleep=clock.sleep)
        _ = [chunk async for chunk in limiter]

        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_wall_clock_lower_bound(self):
        """N bytes at R bytes/s take at least N/R seconds."""
        rate = 20 * 1024
        limiter = RateLimiter(chunks_of(*[1024] * 5), rate)

        start = time.monotonic()
        _ = [chunk async for chunk in limiter]
        elapsed = time.monotonic() - start

        # 5 KB at 20 KB/s = 0.25s, allow timer resolution slack
        assert elapsed >= 0.25 - 0.02
