from unittest.mock import AsyncMock

import httpx
import pytest

from vehicle_video.services.retry import RetryPolicy
from vehicle_video.utils.clock import FakeClock


def test_delay_for_is_exponential_and_capped():
    policy = RetryPolicy(max_attempts=5, base_delay=2.0, max_delay=10.0)
    assert [policy.delay_for(n) for n in range(1, 5)] == [2.0, 4.0, 8.0, 10.0]


@pytest.mark.asyncio
async def test_run_retries_until_success():
    clock = FakeClock()
    func = AsyncMock(side_effect=[httpx.ConnectError("down"), httpx.ReadTimeout("slow"), "ok"])
    retries = []

    result = await RetryPolicy(max_attempts=3, base_delay=2.0).run(
        func, clock=clock, on_retry=lambda exc, attempt: retries.append(attempt)
    )

    assert result == "ok"
    assert func.await_count == 3
    assert clock.sleeps == [2.0, 4.0]
    assert retries == [1, 2]


@pytest.mark.asyncio
async def test_run_reraises_last_error_when_exhausted():
    clock = FakeClock()
    func = AsyncMock(side_effect=httpx.ConnectError("still down"))

    with pytest.raises(httpx.ConnectError, match="still down"):
        await RetryPolicy(max_attempts=3, base_delay=2.0).run(func, clock=clock)

    assert func.await_count == 3
    assert clock.sleeps == [2.0, 4.0]


@pytest.mark.asyncio
async def test_non_retryable_error_propagates_immediately():
    clock = FakeClock()
    func = AsyncMock(side_effect=KeyError("videoUrl"))
    policy = RetryPolicy(max_attempts=3, retry_on=(httpx.HTTPError,))

    with pytest.raises(KeyError):
        await policy.run(func, clock=clock)

    assert func.await_count == 1
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_constant_interval_with_caller_logging(caplog):
    clock = FakeClock()
    func = AsyncMock(side_effect=[ValueError("pending"), ValueError("pending"), "done"])
    seen = []
    policy = RetryPolicy(max_attempts=5, base_delay=10.0, exponential_base=1.0, max_delay=10.0)

    with caplog.at_level("WARNING", logger="vehicle_video.services.retry"):
        result = await policy.run(func, clock=clock, on_retry=lambda exc, attempt: seen.append(str(exc)))

    assert result == "done"
    assert clock.sleeps == [10.0, 10.0]
    assert seen == ["pending", "pending"]
    assert not [r for r in caplog.records if r.name == "vehicle_video.services.retry"]
