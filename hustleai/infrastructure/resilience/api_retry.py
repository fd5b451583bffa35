"""Service for executing bulk API calls with automatic retries.

Implements bounded exponential backoff for transient failures. A 429 is
treated as an expected condition: the declared wait (or a derived one when
the server did not say) is recorded on the shared rate limiter and slept
off before the next attempt.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional

from hustleai.domain.errors import BackendError, HttpStatusError, RateLimitedError
from hustleai.domain.events.api_events import (
    ApiCallDeferred,
    CooldownStarted,
    EventDispatcher,
    RetryScheduled,
)
from hustleai.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF_SECONDS = 1.0
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_RATE_LIMIT_BASE_SECONDS = 5.0


class MaxRetryError(Exception):
    """Exception raised when a call could not be completed within the retry budget."""

    def __init__(self, original_exception: BackendError, attempts: int):
        self.original_exception = original_exception
        self.attempts = attempts
        super().__init__(f"Gave up after {attempts} attempt(s). Last error: {original_exception}")


def is_retryable(error: BackendError) -> bool:
    """Timeouts, connection failures, 429 and 5xx are worth another attempt."""
    if isinstance(error, HttpStatusError):
        return error.status >= 500
    return error.transient


class RetryPolicy:
    """Runs a backend call under the rate limiter with bounded retries."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff_s: float = DEFAULT_INITIAL_BACKOFF_SECONDS,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        rate_limit_base_s: float = DEFAULT_RATE_LIMIT_BASE_SECONDS,
        events: Optional[EventDispatcher] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the RetryPolicy.

        Args:
            rate_limiter: Shared limiter; every attempt passes its gate.
            max_retries: Retries after the first attempt.
            initial_backoff_s: Delay before the first retry of a transient failure.
            backoff_factor: Multiplier applied to the delay after each retry.
            rate_limit_base_s: Base for the derived 429 wait, `2**attempt * base`.
            events: Dispatcher for retry/cooldown events.
            sleep: Coroutine used for backoff delays.
        """
        self.rate_limiter = rate_limiter
        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self.rate_limit_base_s = rate_limit_base_s
        self.events = events or EventDispatcher()
        self._sleep = sleep
        logger.info(
            f"RetryPolicy initialized: max_retries={max_retries}, "
            f"initial_backoff={initial_backoff_s}s, factor={backoff_factor}"
        )

    def rate_limit_delay(self, error: RateLimitedError, attempt: int) -> float:
        """Declared wait if the server gave one, else `2**attempt * base`."""
        if error.declared:
            return error.retry_after
        return (2 ** attempt) * self.rate_limit_base_s

    async def execute_with_retry(
        self,
        func: Callable[..., Coroutine[Any, Any, Any]],
        *args: Any,
        endpoint_name: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """Executes an async backend call with rate limiting and retries.

        Args:
            func: The coroutine function issuing the request.
            *args: Positional arguments for the function.
            endpoint_name: Name used in logs and events.
            **kwargs: Keyword arguments for the function.

        Returns:
            Whatever `func` returns on its first successful attempt.

        Raises:
            MaxRetryError: On a non-retryable failure or once the budget is spent.
        """
        endpoint = endpoint_name or getattr(func, "__name__", "call")
        current_backoff = self.initial_backoff_s
        last_exception: Optional[BackendError] = None
        attempts = 0

        for attempt in range(self.max_retries + 1):
            attempts = attempt + 1
            waited = await self.rate_limiter.acquire()
            if waited > 0:
                self.events.dispatch(ApiCallDeferred(endpoint=endpoint, wait_time_seconds=waited))

            try:
                return await func(*args, **kwargs)
            except BackendError as e:
                last_exception = e
                if isinstance(e, RateLimitedError):
                    # Noted even when no retry follows
                    delay = self.rate_limit_delay(e, attempt)
                    self.rate_limiter.note_rate_limited(delay)
                    self.events.dispatch(CooldownStarted(endpoint=endpoint, retry_after_seconds=delay))
                else:
                    delay = current_backoff
                    current_backoff *= self.backoff_factor

                if not is_retryable(e):
                    logger.error(f"Non-retryable error calling {endpoint} on attempt {attempts}: {e}")
                    break
                if attempt >= self.max_retries:
                    logger.error(f"Max retries ({self.max_retries}) reached for {endpoint}. Last error: {e}")
                    break

                logger.warning(
                    f"Retryable error calling {endpoint} on attempt {attempts}/{self.max_retries + 1}: "
                    f"{e.kind.value}. Waiting {delay:.2f}s..."
                )
                self.events.dispatch(RetryScheduled(endpoint=endpoint, attempt_number=attempts, delay_seconds=delay))
                await self._sleep(delay)

        raise MaxRetryError(last_exception, attempts) from last_exception
