"""
Bounded exponential-backoff retry for vendor calls.
"""
import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from crawler.errors import is_rate_limit_error

T = TypeVar("T")


class RetryExecutor:
    """Runs a fallible async operation with bounded retries.

    A call that still fails after ``max_retries`` retries yields ``None``
    instead of raising, so one failing vendor call cannot abort the loop it
    belongs to.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_seconds: float = 2.0,
        max_delay_seconds: float = 60.0,
        jitter_ratio: float = 0.3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.max_retries = max_retries
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.jitter_ratio = jitter_ratio
        self._sleep = sleep
        self._rng = rng or random.Random()

    def backoff_delay(self, attempt: int, rate_limited: bool = False) -> float:
        """Delay before retrying after the given zero-based attempt."""
        delay = self.base_delay_seconds * (2 ** attempt)
        delay += self._rng.uniform(0, self.jitter_ratio * delay)
        if rate_limited:
            delay *= 2
        return min(delay, self.max_delay_seconds)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
        context: str = "operation",
    ) -> Optional[T]:
        """Invoke ``operation`` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument coroutine factory
            max_retries: Overrides the executor default for this call
            context: Label used in log messages

        Returns:
            The operation result, or None after ``max_retries + 1`` failed attempts
        """
        retries = self.max_retries if max_retries is None else max_retries

        for attempt in range(retries + 1):
            try:
                return await operation()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt == retries:
                    logger.error(f"{context} failed after {retries + 1} attempts: {e}")
                    return None

                rate_limited = is_rate_limit_error(e)
                delay = self.backoff_delay(attempt, rate_limited)
                logger.warning(
                    f"{context} attempt {attempt + 1} failed"
                    f"{' (rate limited)' if rate_limited else ''}: {e}. Retrying in {delay:.1f}s..."
                )
                await self._sleep(delay)

        return None
