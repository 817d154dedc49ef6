# seo_pilot/apis/google_indexing.py

import json
import logging
from typing import List, Optional, Sequence, Tuple

import httpx

from seo_pilot.apis.results import SubmitResult
from seo_pilot.errors import ApiError
from seo_pilot.utils.batch import boundary_from_content_type, parse_batch_response
from seo_pilot.utils.http import client_scope
from seo_pilot.utils.retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

SCOPE = "https://www.googleapis.com/auth/indexing"
BATCH_ENDPOINT = "https://indexing.googleapis.com/batch"
PUBLISH_PATH = "/v3/urlNotifications:publish"
BATCH_SIZE = 100
REQUEST_BOUNDARY = "batch_boundary"


def build_batch_body(urls: Sequence[str], *, type: str = "URL_UPDATED", boundary: str = REQUEST_BOUNDARY) -> str:
    """One application/http part per URL, each an embedded publish call."""
    parts = []
    for index, url in enumerate(urls, start=1):
        parts.append("\r\n".join([
            f"--{boundary}",
            "Content-Type: application/http",
            f"Content-ID: <item{index}>",
            "",
            f"POST {PUBLISH_PATH} HTTP/1.1",
            "Content-Type: application/json",
            "",
            json.dumps({"url": url, "type": type}),
        ]))
    return "\r\n".join(parts) + f"\r\n--{boundary}--\r\n"


async def _submit_batch(
    http: httpx.AsyncClient,
    urls: Sequence[str],
    access_token: str,
) -> Tuple[int, List[str]]:
    resp = await http.post(
        BATCH_ENDPOINT,
        content=build_batch_body(urls).encode("utf-8"),
        headers={
            "Authorization": f"Bearer {access_token}",
            "Content-Type": f"multipart/mixed; boundary={REQUEST_BOUNDARY}",
        },
    )
    if not resp.is_success:
        raise ApiError(f"Batch request failed: {resp.status_code}", status=resp.status_code)

    items = parse_batch_response(resp.text, boundary_from_content_type(resp.headers.get("content-type")))
    if not items:
        raise ApiError(f"Unparsable batch response (HTTP {resp.status_code})", status=resp.status_code)

    success_count = 0
    errors: List[str] = []
    for url, item in zip(urls, items):
        if item.ok:
            success_count += 1
        else:
            errors.append(f"URL {url}: {item.error or f'Status {item.status_code}'}")
    for url in urls[len(items):]:
        errors.append(f"URL {url}: no response in batch")
    return success_count, errors


async def submit_google_indexing(
    urls: Sequence[str],
    access_token: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    policy: Optional[RetryPolicy] = None,
) -> SubmitResult:
    """
    Publish URL_UPDATED notifications through the Indexing API batch endpoint.

    Up to 100 URLs travel in one multipart request. A 429 on the batch retries
    the whole batch; any other batch-level failure is reported once as
    "Batch failed: ..." while per-URL failures inside a batch are reported
    per URL and do not affect their neighbours.
    """
    if not urls:
        return SubmitResult(success=True, url_count=0)

    errors: List[str] = []
    success_count = 0

    async with client_scope(client) as http:
        for start in range(0, len(urls), BATCH_SIZE):
            batch = list(urls[start:start + BATCH_SIZE])
            try:
                ok, batch_errors = await with_retry(
                    lambda: _submit_batch(http, batch, access_token),
                    policy,
                )
            except (ApiError, httpx.HTTPError) as e:
                logger.error("Indexing API batch of %d URLs failed: %s", len(batch), e)
                errors.append(f"Batch failed: {e}")
                continue
            success_count += ok
            errors.extend(batch_errors)
            logger.info("Indexing API batch: %d/%d accepted", ok, len(batch))

    return SubmitResult(success=success_count == len(urls), url_count=success_count, errors=errors)
