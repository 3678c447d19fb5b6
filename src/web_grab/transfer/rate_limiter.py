"""
Byte-throughput limiting for streamed downloads.

Wraps an async stream of body chunks and paces it so the average
throughput stays under a ceiling. Throttling sleeps the calling task
only; other downloads on the event loop keep running.
"""

import asyncio
import time
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable

from web_grab.utils.logging import get_logger
from web_grab.utils.units import format_bytes

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter:
    """
    Throttle an async byte stream to a target bytes-per-second rate.

    After each chunk of n bytes, the limiter computes how long n bytes
    should take at the target rate. If less wall-clock time has passed
    since the previous chunk, it sleeps for the difference before
    yielding. A rate of 0 or None passes chunks straight through.

    Example:
        >>> limiter = RateLimiter(response.aiter_bytes(), 200 * 1024)
        >>> async for chunk in limiter:
        ...     sink.write(chunk)
    """

    def __init__(
        self,
        source: AsyncIterable[bytes],
        bytes_per_second: int | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """
        Initialize rate limiter.

        Args:
            source: Async iterable of byte chunks
            bytes_per_second: Throughput ceiling; 0 or None disables limiting
            clock: Monotonic clock, injectable for tests
            sleep: Async sleep, injectable for tests
        """
        self.source = source
        self.bytes_per_second = bytes_per_second or 0
        self._clock = clock
        self._sleep = sleep
        self._last_read = clock()
        self.bytes_read = 0
        self.time_slept = 0.0

    @property
    def enabled(self) -> bool:
        """Whether limiting is active."""
        return self.bytes_per_second > 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        async for chunk in self.source:
            n = len(chunk)
            self.bytes_read += n

            if self.enabled and n > 0:
                expected = n / self.bytes_per_second
                elapsed = self._clock() - self._last_read
                if elapsed < expected:
                    delay = expected - elapsed
                    self.time_slept += delay
                    await self._sleep(delay)
                self._last_read = self._clock()

            yield chunk

    def __repr__(self) -> str:
        rate = f"{format_bytes(self.bytes_per_second)}/s" if self.enabled else "unlimited"
        return f"RateLimiter(rate={rate}, bytes_read={self.bytes_read})"
