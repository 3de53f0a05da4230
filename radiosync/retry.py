"""Exponential backoff with a wall-clock budget for network calls."""

import asyncio
import random
import time
from typing import Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel

from .errors import NON_RETRYABLE

T = TypeVar("T")

RetryCallback = Callable[[Exception, int, float], None]


class RetryPolicy(BaseModel):
    max_elapsed_s: float = 60.0
    initial_delay_s: float = 0.5
    multiplier: float = 1.5
    max_delay_s: float = 60.0
    jitter: float = 0.5  # +/- fraction applied to each delay

    def delay(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """Backoff before retry number `attempt` (1-based)."""
        base = min(self.initial_delay_s * (self.multiplier ** (attempt - 1)), self.max_delay_s)
        if self.jitter <= 0:
            return base
        spread = base * self.jitter
        return base - spread + (2 * spread * rand())


async def retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    on_retry: Optional[RetryCallback] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Awaits operation() until it succeeds or policy.max_elapsed_s is spent.

    The last exception is re-raised once the budget is exhausted. Data errors
    (ParseError, WindowError) are raised on the first occurrence. Logging is
    left to the caller through on_retry(exc, attempt, delay).
    """
    started = clock()
    attempt = 0
    while True:
        try:
            return await operation()
        except NON_RETRYABLE:
            raise
        except Exception as e:
            attempt += 1
            delay = policy.delay(attempt)
            if clock() - started + delay > policy.max_elapsed_s:
                raise
            if on_retry:
                on_retry(e, attempt, delay)
            await sleep(delay)
