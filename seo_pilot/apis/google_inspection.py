# seo_pilot/apis/google_inspection.py

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import httpx

from seo_pilot.utils.http import client_scope, json_body, raise_for_status
from seo_pilot.utils.retry import RetryPolicy, with_retry

INSPECT_ENDPOINT = "https://searchconsole.googleapis.com/v1/urlInspection/index:inspect"


@dataclass
class InspectionResult:
    url: str
    verdict: str              # PASS / NEUTRAL / FAIL
    last_crawl_time: str
    indexing_state: str       # e.g. INDEXING_ALLOWED
    mobile_usability: str     # e.g. MOBILE_FRIENDLY

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


async def inspect_url(
    url: str,
    site_url: str,
    access_token: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    policy: Optional[RetryPolicy] = None,
) -> InspectionResult:
    """Run a URL Inspection for one page of a Search Console property."""
    payload = {"inspectionUrl": url, "siteUrl": site_url, "languageCode": "en"}

    async with client_scope(client) as http:
        async def _inspect() -> httpx.Response:
            resp = await http.post(INSPECT_ENDPOINT, json=payload, headers={"Authorization": f"Bearer {access_token}"})
            raise_for_status(resp, "Failed to inspect URL")
            return resp

        resp = await with_retry(_inspect, policy)

    result = json_body(resp, "Failed to inspect URL").get("inspectionResult") or {}
    index_status = result.get("indexStatusResult") or {}
    mobile = result.get("mobileUsabilityResult") or {}

    return InspectionResult(
        url=url,
        verdict=index_status.get("verdict") or "UNKNOWN",
        last_crawl_time=index_status.get("lastCrawlTime") or "Never",
        indexing_state=index_status.get("indexingState") or "UNKNOWN",
        mobile_usability=mobile.get("verdict") or "UNKNOWN",
    )
