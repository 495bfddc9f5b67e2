"""
Rate limiter for provider requests.

Implements a sliding window rate limiter so that every worker sharing a
provider stays within that provider's request quota.
"""

import asyncio
import time
import logging
from contextvars import ContextVar
from typing import Deque, Optional
from collections import deque

logger = logging.getLogger(__name__)


class QueueClock:
    """
    Time one task has spent queued on rate limiters.

    Overlapping waits are counted once. The batch runner uses it to keep
    quota waits out of a symbol's timeout.
    """

    def __init__(self):
        self._total = 0.0
        self._active = 0
        self._since: Optional[float] = None

    def start(self) -> None:
        if self._active == 0:
            self._since = time.monotonic()
        self._active += 1

    def stop(self) -> None:
        self._active -= 1
        if self._active == 0 and self._since is not None:
            self._total += time.monotonic() - self._since
            self._since = None

    @property
    def seconds(self) -> float:
        ongoing = time.monotonic() - self._since if self._since is not None else 0.0
        return self._total + ongoing


# Clock of the current task, if something is measuring it
queue_clock: ContextVar[Optional[QueueClock]] = ContextVar("queue_clock", default=None)


class RateLimiter:
    """
    Sliding window rate limiter for API requests.

    Tracks requests in a sliding time window and blocks when the limit
    is reached, waiting until capacity becomes available. One instance
    is owned by each provider and shared by all batch workers.

    Example:
        limiter = RateLimiter(max_requests_per_minute=5, name="alpha_vantage")
        async with limiter:
            await make_request()
    """

    def __init__(
        self,
        max_requests_per_minute: int = 60,
        window_seconds: float = 60.0,
        name: str = "provider"
    ):
        if max_requests_per_minute <= 0:
            raise ValueError(f"max_requests_per_minute must be positive, got {max_requests_per_minute}")
        self.max_requests = max_requests_per_minute
        self.window_seconds = window_seconds
        self.name = name
        self._request_times: Deque[float] = deque()
        self._lock = asyncio.Lock()

        logger.debug(
            f"RateLimiter[{name}] initialized: {max_requests_per_minute} requests "
            f"per {window_seconds} seconds"
        )

    def _cleanup_old_requests(self) -> None:
        cutoff = time.monotonic() - self.window_seconds
        while self._request_times and self._request_times[0] < cutoff:
            self._request_times.popleft()

    def get_remaining(self) -> int:
        """Number of requests that can still be made in the current window."""
        self._cleanup_old_requests()
        return max(0, self.max_requests - len(self._request_times))

    def get_wait_time(self) -> float:
        """Seconds to wait before the next request is allowed (0 if none)."""
        self._cleanup_old_requests()
        if len(self._request_times) < self.max_requests:
            return 0.0

        # Wait until the oldest request leaves the window
        oldest = self._request_times[0]
        wait_time = (oldest + self.window_seconds) - time.monotonic()
        return max(0.0, wait_time)

    def record_request(self) -> None:
        self._request_times.append(time.monotonic())

    async def acquire(self) -> None:
        """
        Wait if necessary before allowing a request.

        The lock is held while sleeping so waiting workers are served in
        arrival order. Time spent here, queue included, is added to the
        caller's QueueClock when one is set.
        """
        clock = queue_clock.get()
        if clock is not None:
            clock.start()
        try:
            async with self._lock:
                wait_time = self.get_wait_time()
                if wait_time > 0:
                    logger.warning(
                        f"{self.name} rate limit reached, waiting {wait_time:.2f}s"
                    )
                    await asyncio.sleep(wait_time)

                self.record_request()
        finally:
            if clock is not None:
                clock.stop()

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        pass

    def reset(self) -> None:
        self._request_times.clear()

    def __repr__(self) -> str:
        return (
            f"RateLimiter(name={self.name!r}, max_requests={self.max_requests}, "
            f"window_seconds={self.window_seconds}, "
            f"remaining={self.get_remaining()})"
        )
