"""Implementation of the client-side rate limiter.

Spaces outgoing requests at least `min_interval` apart and holds every
request back while a server-declared cooldown (from a 429) is active.
The cooldown is global to the limiter instance, not per endpoint.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL_SECONDS = 1.0

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Minimum-spacing limiter with a monotonic cooldown window."""

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ):
        """Initializes the rate limiter.

        Args:
            min_interval: Minimum gap in seconds between two issued requests.
            clock: Monotonic time source in seconds.
            sleep: Coroutine used to suspend; swapped out in tests.
        """
        self.min_interval = min_interval
        self.last_request_time: Optional[float] = None
        self.rate_limit_reset_time = 0.0
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        logger.info(f"RateLimiter initialized: min interval {min_interval}s")

    def _wait_time(self, now: float) -> float:
        wait = self.rate_limit_reset_time - now
        if self.last_request_time is not None:
            wait = max(wait, self.last_request_time + self.min_interval - now)
        return max(0.0, wait)

    async def acquire(self) -> float:
        """Waits until the next request may be issued and claims the slot.

        Callers are served one at a time, so issuance stays serialized even
        when many coroutines ask at once.

        Returns:
            Total seconds spent waiting.
        """
        waited = 0.0
        async with self._lock:
            while True:
                wait_time = self._wait_time(self._clock())
                if wait_time <= 0:
                    break
                # A 429 noted while we slept may have pushed the reset further out
                logger.debug(f"Rate limit gate closed. Waiting for {wait_time:.2f} seconds.")
                await self._sleep(wait_time)
                waited += wait_time
            self.last_request_time = self._clock()
        return waited

    def get_wait_time(self) -> float:
        """Estimates the time needed before the next request can be made."""
        return self._wait_time(self._clock())

    def note_rate_limited(self, retry_after: float) -> float:
        """Opens (or extends) the cooldown after a 429.

        The reset time only ever moves forward; a shorter hint than the one
        already in force is ignored.

        Returns:
            The cooldown seconds now remaining.
        """
        candidate = self._clock() + max(0.0, retry_after)
        if candidate > self.rate_limit_reset_time:
            self.rate_limit_reset_time = candidate
            logger.warning(f"Backend rate limit hit. Cooling down for {retry_after:.1f}s")
        return self.cooldown_remaining()

    def cooldown_remaining(self) -> float:
        return max(0.0, self.rate_limit_reset_time - self._clock())
