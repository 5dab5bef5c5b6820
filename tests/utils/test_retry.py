# ABOUTME: Tests for the process-wide request rate limiter and the rate-limit retry policy
# ABOUTME: Uses a fake clock and sleep so spacing and backoff are checked without real waits

import asyncio

import pytest

from fakes import FakeClock
from mining_intel.extraction.base import ExtractionError, RateLimitError
from mining_intel.utils.retry import RateLimitRetryPolicy, RequestRateLimiter


class TestRequestRateLimiter:
    @pytest.mark.asyncio
    async def test_tasks_are_spaced_by_minimum_interval(self):
        clock = FakeClock()
        limiter = RequestRateLimiter(4, clock=clock, sleep=clock.sleep)
        starts: list[float] = []

        async def task():
            starts.append(clock())
            return len(starts)

        results = await asyncio.gather(*(limiter.schedule(task) for _ in range(6)))

        assert results == [1, 2, 3, 4, 5, 6]
        assert starts == [0.0, 15.0, 30.0, 45.0, 60.0, 75.0]
        assert all(later - earlier >= 15.0 for earlier, later in zip(starts, starts[1:], strict=False))

    @pytest.mark.asyncio
    async def test_tasks_run_in_enqueue_order_one_at_a_time(self):
        clock = FakeClock()
        limiter = RequestRateLimiter(60, clock=clock, sleep=clock.sleep)
        running = 0
        peak = 0
        order: list[int] = []

        def make_task(index: int):
            async def task():
                nonlocal running, peak
                running += 1
                peak = max(peak, running)
                await asyncio.sleep(0)
                order.append(index)
                running -= 1

            return task

        await asyncio.gather(*(limiter.schedule(make_task(i)) for i in range(5)))

        assert order == [0, 1, 2, 3, 4]
        assert peak == 1
        assert limiter.dispatched == 5

    @pytest.mark.asyncio
    async def test_no_wait_when_interval_already_elapsed(self):
        clock = FakeClock()
        limiter = RequestRateLimiter(4, clock=clock, sleep=clock.sleep)

        async def task():
            return "ok"

        await limiter.schedule(task)
        clock.now += 20.0
        await limiter.schedule(task)

        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_task_failure_propagates_and_next_task_still_spaced(self):
        clock = FakeClock()
        limiter = RequestRateLimiter(6, clock=clock, sleep=clock.sleep)

        async def failing():
            raise ExtractionError("boom")

        async def ok():
            return clock()

        with pytest.raises(ExtractionError):
            await limiter.schedule(failing)
        assert await limiter.schedule(ok) == 10.0

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            RequestRateLimiter(0)

    def test_status(self):
        status = RequestRateLimiter(4).get_status()
        assert status["min_interval_seconds"] == 15.0
        assert status["dispatched"] == 0
        assert status["busy"] is False


class TestRateLimitRetryPolicy:
    @pytest.mark.asyncio
    async def test_exponential_backoff_until_attempts_exhausted(self):
        clock = FakeClock()
        policy = RateLimitRetryPolicy(max_retries=2, sleep=clock.sleep)
        attempts = 0

        async def always_limited():
            nonlocal attempts
            attempts += 1
            raise RateLimitError("429")

        with pytest.raises(RateLimitError):
            await policy.call(always_limited)

        assert attempts == 3
        assert clock.sleeps == [30.0, 60.0]

    @pytest.mark.asyncio
    async def test_backoff_is_capped_at_three_minutes(self):
        clock = FakeClock()
        policy = RateLimitRetryPolicy(max_retries=4, sleep=clock.sleep)

        async def always_limited():
            raise RateLimitError("429")

        with pytest.raises(RateLimitError):
            await policy.call(always_limited)

        assert clock.sleeps == [30.0, 60.0, 120.0, 180.0]

    @pytest.mark.asyncio
    async def test_retry_after_hint_is_honored(self):
        clock = FakeClock()
        policy = RateLimitRetryPolicy(max_retries=2, sleep=clock.sleep)
        attempts = 0

        async def limited_then_ok():
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise RateLimitError("429", retry_after=7.5)
            return "records"

        assert await policy.call(limited_then_ok) == "records"
        assert clock.sleeps == [7.5, 7.5]

    @pytest.mark.asyncio
    async def test_other_errors_fail_immediately(self):
        clock = FakeClock()
        policy = RateLimitRetryPolicy(max_retries=3, sleep=clock.sleep)
        attempts = 0

        async def parse_failure():
            nonlocal attempts
            attempts += 1
            raise ExtractionError("bad json")

        with pytest.raises(ExtractionError):
            await policy.call(parse_failure)

        assert attempts == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_retry_disabled_makes_single_attempt(self):
        clock = FakeClock()
        policy = RateLimitRetryPolicy(max_retries=3, retry_on_rate_limit=False, sleep=clock.sleep)
        attempts = 0

        async def always_limited():
            nonlocal attempts
            attempts += 1
            raise RateLimitError("429")

        with pytest.raises(RateLimitError):
            await policy.call(always_limited)

        assert attempts == 1
        assert policy.get_status()["max_attempts"] == 1
