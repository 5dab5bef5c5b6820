# ABOUTME: Process-wide request spacing and rate-limit retry built on asyncio and tenacity
# ABOUTME: Serializes LLM calls at a fixed requests-per-minute and backs off on HTTP 429 responses

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from mining_intel.extraction.base import RateLimitError
from mining_intel.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

DEFAULT_BACKOFF_SECONDS = 30.0
MAX_BACKOFF_SECONDS = 180.0


class RequestRateLimiter:
    """Runs scheduled tasks one at a time, starting each at least 60/rpm seconds after the last.

    Waiters acquire the lock in arrival order, so tasks start in the order they were
    scheduled. The task runs while the lock is held, which caps concurrency at one.
    """

    def __init__(
        self,
        requests_per_minute: int,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        self.requests_per_minute = requests_per_minute
        self.min_interval = 60.0 / requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_start: float | None = None
        self.dispatched = 0

    async def schedule(self, task: Callable[[], Awaitable[T]]) -> T:
        """Queue a zero-argument coroutine function and return its result or raise its error."""
        async with self._lock:
            if self._last_start is not None:
                wait = self._last_start + self.min_interval - self._clock()
                if wait > 0:
                    logger.debug("Rate limiting", sleep_time=round(wait, 3))
                    await self._sleep(wait)
            self._last_start = self._clock()
            self.dispatched += 1
            return await task()

    def get_status(self) -> dict[str, Any]:
        """Get current limiter settings and counters."""
        return {
            "requests_per_minute": self.requests_per_minute,
            "min_interval_seconds": self.min_interval,
            "last_start": self._last_start,
            "dispatched": self.dispatched,
            "busy": self._lock.locked(),
        }


class wait_retry_after(wait_base):
    """Wait for the provider's retry-after hint when present, otherwise defer to a fallback wait."""

    def __init__(self, fallback: wait_base):
        self.fallback = fallback

    def __call__(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        hint = getattr(error, "retry_after", None)
        if hint is not None and hint > 0:
            return float(hint)
        return self.fallback(retry_state)


def _log_backoff(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Rate limited, backing off",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        retry_after=getattr(error, "retry_after", None),
        error=str(error),
    )


class RateLimitRetryPolicy:
    """Bounded retry for rate-limited calls; every other error propagates on the first attempt."""

    def __init__(
        self,
        max_retries: int = 2,
        retry_on_rate_limit: bool = True,
        *,
        base_wait: float = DEFAULT_BACKOFF_SECONDS,
        max_wait: float = MAX_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.retry_on_rate_limit = retry_on_rate_limit
        self.base_wait = base_wait
        self.max_wait = max_wait
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1 if self.retry_on_rate_limit else 1

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Invoke operation, retrying on RateLimitError with retry-after or exponential backoff.

        Args:
            operation: Zero-argument coroutine function, re-invoked for each attempt

        Returns:
            The operation's result

        Raises:
            RateLimitError: When attempts are exhausted
            Exception: Any non-rate-limit error from the operation, unchanged
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_retry_after(wait_exponential(multiplier=self.base_wait, max=self.max_wait)),
            retry=retry_if_exception_type(RateLimitError),
            sleep=self._sleep,
            before_sleep=_log_backoff,
            reraise=True,
        ):
            with attempt:
                return await operation()
        raise AssertionError("unreachable: tenacity reraises the final error")

    def get_status(self) -> dict[str, Any]:
        return {
            "max_attempts": self.max_attempts,
            "retry_on_rate_limit": self.retry_on_rate_limit,
            "base_wait_seconds": self.base_wait,
            "max_wait_seconds": self.max_wait,
        }
