"""
Rate limiter utility for pacing calls to one external vendor.
"""

import asyncio
import time
from typing import Optional


class RateLimiter:
    """Paces calls through this instance to a minimum interval.

    One limiter is constructed per vendor and injected where it is needed,
    so independent pipelines get independent pacing.
    """

    def __init__(self, min_interval_seconds: float = 0.2):
        """Initialize rate limiter.

        Args:
            min_interval_seconds: Minimum delay between two calls
        """
        if min_interval_seconds < 0:
            raise ValueError("Rate limit interval must be non-negative")
        self.min_interval_seconds = min_interval_seconds
        self.last_call_time: Optional[float] = None
        self._lock: Optional[asyncio.Lock] = None

    @classmethod
    def from_milliseconds(cls, interval_ms: int) -> "RateLimiter":
        return cls(interval_ms / 1000.0)

    async def wait(self):
        """Wait until the interval has elapsed since the previous call, then record this one."""
        # Created on first use so it binds to the loop that runs the calls
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self.last_call_time is not None:
                elapsed = time.monotonic() - self.last_call_time
                if elapsed < self.min_interval_seconds:
                    await asyncio.sleep(self.min_interval_seconds - elapsed)

            self.last_call_time = time.monotonic()
