# seo_pilot/utils/retry.py

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from seo_pilot.errors import ApiError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: int = 1000


def backoff_delay(attempt: int, base_delay_ms: int) -> float:
    """Seconds to wait before retry number `attempt` (0-based)."""
    return (base_delay_ms * (2 ** attempt)) / 1000.0


def is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.status == 429


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Await `fn()`; retry only on HTTP 429 with exponential backoff.

      • delay before retry n (0-based) = base_delay_ms * 2**n
      • at most `max_retries` extra attempts, then the last error is re-raised
      • any other exception propagates on the first attempt
    """
    policy = policy or RetryPolicy()
    retrying = AsyncRetrying(
        retry=retry_if_exception(is_rate_limited),
        # tenacity's attempt_number is 1-based: multiplier * 2**(n-1)
        wait=wait_exponential(multiplier=policy.base_delay_ms / 1000.0, exp_base=2, min=0),
        stop=stop_after_attempt(max(0, policy.max_retries) + 1),
        reraise=True,
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )

    # AsyncRetrying only awaits coroutine functions; lambdas returning a coroutine must be wrapped
    async def _attempt() -> T:
        return await fn()

    return await retrying(_attempt)
