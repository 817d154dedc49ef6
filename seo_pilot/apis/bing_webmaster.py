# seo_pilot/apis/bing_webmaster.py

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

import httpx

from seo_pilot.apis.results import SubmitResult
from seo_pilot.errors import ApiError
from seo_pilot.utils.http import client_scope
from seo_pilot.utils.retry import RetryPolicy, backoff_delay, is_rate_limited

logger = logging.getLogger(__name__)

SUBMIT_URL_ENDPOINT = "https://ssl.bing.com/webmaster/api.svc/json/SubmitUrl"
CONCURRENCY = 5


async def _submit_single_url(http: httpx.AsyncClient, url: str, api_key: str, site_url: str) -> None:
    resp = await http.post(
        SUBMIT_URL_ENDPOINT,
        params={"apikey": api_key},
        json={"siteUrl": site_url, "url": url},
    )
    if not resp.is_success:
        # Bing answers 200 with an empty body on success
        raise ApiError(f"Failed to submit URL: {resp.status_code} {resp.text}".rstrip(), status=resp.status_code)


async def submit_bing_urls(
    urls: Sequence[str],
    api_key: str,
    site_url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> SubmitResult:
    """
    Submit URLs one call each, 5 in flight at a time.

    Backoff is per chunk: after a round, only the URLs that got a 429 are
    re-sent (after base * 2**(round-1) ms), so URLs Bing already accepted are
    never submitted twice.
    """
    policy = policy or RetryPolicy()
    errors: List[str] = []
    success_count = 0

    async with client_scope(client) as http:
        for start in range(0, len(urls), CONCURRENCY):
            pending = list(urls[start:start + CONCURRENCY])
            attempt = 0

            while pending and attempt <= policy.max_retries:
                if attempt > 0:
                    delay = backoff_delay(attempt - 1, policy.base_delay_ms)
                    logger.warning("Bing rate-limited %d URLs; backing off %.2fs", len(pending), delay)
                    await sleep(delay)

                outcomes = await asyncio.gather(
                    *(_submit_single_url(http, url, api_key, site_url) for url in pending),
                    return_exceptions=True,
                )

                still_pending: List[str] = []
                for url, outcome in zip(pending, outcomes):
                    if not isinstance(outcome, BaseException):
                        success_count += 1
                    elif is_rate_limited(outcome) and attempt < policy.max_retries:
                        still_pending.append(url)
                    elif isinstance(outcome, Exception):
                        if not isinstance(outcome, (ApiError, httpx.HTTPError)):
                            logger.error("Unexpected error submitting %s to Bing", url, exc_info=outcome)
                        errors.append(f"URL {url}: {outcome}")
                    else:
                        raise outcome

                pending = still_pending
                attempt += 1

    return SubmitResult(success=not errors, url_count=success_count, errors=errors)
