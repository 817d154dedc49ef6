# seo_pilot/apis/indexnow.py

import logging
from typing import List, Optional, Sequence
from urllib.parse import urlparse

import httpx

from seo_pilot.apis.results import SubmitResult
from seo_pilot.errors import ApiError
from seo_pilot.utils.http import client_scope, raise_for_status
from seo_pilot.utils.retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

INDEXNOW_ENDPOINT = "https://api.indexnow.org/indexnow"
MAX_URLS_PER_BATCH = 10_000


def key_location(site_url: str, key: str) -> str:
    host = urlparse(site_url).hostname or ""
    return f"https://{host}/{key}.txt"


async def submit_indexnow(
    urls: Sequence[str],
    key: str,
    site_url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    policy: Optional[RetryPolicy] = None,
) -> SubmitResult:
    """
    Notify IndexNow-participating engines about `urls`.

    One POST per 10,000 URLs. A batch either fully succeeds (200/202) or
    contributes a single "Batch failed" error.
    """
    if not urls:
        return SubmitResult(success=True, url_count=0)

    host = urlparse(site_url).hostname or ""
    location = key_location(site_url, key)
    errors: List[str] = []
    success_count = 0

    async with client_scope(client) as http:
        for start in range(0, len(urls), MAX_URLS_PER_BATCH):
            batch = list(urls[start:start + MAX_URLS_PER_BATCH])
            payload = {"host": host, "key": key, "keyLocation": location, "urlList": batch}

            async def _post() -> httpx.Response:
                resp = await http.post(INDEXNOW_ENDPOINT, json=payload)
                raise_for_status(resp, "HTTP")
                return resp

            try:
                await with_retry(_post, policy)
            except (ApiError, httpx.HTTPError) as e:
                logger.error("IndexNow batch of %d URLs failed: %s", len(batch), e)
                errors.append(f"Batch failed: {e}")
                continue
            success_count += len(batch)
            logger.info("IndexNow accepted %d URLs", len(batch))

    return SubmitResult(
        success=success_count == len(urls),
        url_count=success_count,
        errors=errors,
    )
