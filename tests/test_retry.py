"""Retry helper: only 429 is retried, with exponential backoff."""

import asyncio

import pytest

from seo_pilot.errors import ApiError
from seo_pilot.utils.retry import RetryPolicy, backoff_delay, is_rate_limited, with_retry


class Flaky:
    def __init__(self, failures, value="ok"):
        self.failures = list(failures)
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.value


def test_backoff_delay_doubles_from_base():
    assert backoff_delay(0, 1000) == 1.0
    assert backoff_delay(1, 1000) == 2.0
    assert backoff_delay(3, 250) == 2.0


def test_is_rate_limited_only_for_429_api_errors():
    assert is_rate_limited(ApiError("slow down", status=429))
    assert not is_rate_limited(ApiError("boom", status=500))
    assert not is_rate_limited(ApiError("no status"))
    assert not is_rate_limited(ValueError("429"))


def test_success_first_try_calls_once(sleeper):
    fn = Flaky([])
    assert asyncio.run(with_retry(fn, sleep=sleeper)) == "ok"
    assert fn.calls == 1
    assert sleeper.delays == []


@pytest.mark.parametrize("k", [1, 2, 3])
def test_recovers_after_k_rate_limits(sleeper, k):
    fn = Flaky([ApiError("429", status=429)] * k)
    result = asyncio.run(with_retry(fn, RetryPolicy(max_retries=3, base_delay_ms=1000), sleep=sleeper))
    assert result == "ok"
    assert fn.calls == k + 1
    assert sleeper.delays == [1.0, 2.0, 4.0][:k]


def test_gives_up_after_max_retries_with_original_error(sleeper):
    errors = [ApiError(f"429 #{i}", status=429) for i in range(5)]
    fn = Flaky(errors)
    with pytest.raises(ApiError) as exc_info:
        asyncio.run(with_retry(fn, RetryPolicy(max_retries=2, base_delay_ms=100), sleep=sleeper))
    assert fn.calls == 3
    assert exc_info.value.status == 429
    assert str(exc_info.value) == "429 #2"
    assert sleeper.delays == pytest.approx([0.1, 0.2])


def test_other_status_is_not_retried(sleeper):
    fn = Flaky([ApiError("server error", status=500)])
    with pytest.raises(ApiError):
        asyncio.run(with_retry(fn, sleep=sleeper))
    assert fn.calls == 1
    assert sleeper.delays == []


def test_non_api_errors_propagate_immediately(sleeper):
    fn = Flaky([RuntimeError("network down")])
    with pytest.raises(RuntimeError):
        asyncio.run(with_retry(fn, sleep=sleeper))
    assert fn.calls == 1


def test_zero_retries_means_single_attempt(sleeper):
    fn = Flaky([ApiError("429", status=429)])
    with pytest.raises(ApiError):
        asyncio.run(with_retry(fn, RetryPolicy(max_retries=0), sleep=sleeper))
    assert fn.calls == 1


def test_plain_callable_returning_a_coroutine_is_awaited(sleeper):
    fn = Flaky([ApiError("429", status=429)], value=(2, []))
    result = asyncio.run(with_retry(lambda: fn(), RetryPolicy(max_retries=2, base_delay_ms=10), sleep=sleeper))
    assert result == (2, [])
    assert fn.calls == 2
    assert sleeper.delays == pytest.approx([0.01])
