# seo_pilot/apis/search_console.py

import logging
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from seo_pilot.utils.http import client_scope, json_body, raise_for_status
from seo_pilot.utils.retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

SCOPE = "https://www.googleapis.com/auth/webmasters"
ROW_LIMIT = 1000


@dataclass
class PerformanceRow:
    keyword: str
    page: str
    clicks: int
    impressions: int
    ctr: float
    position: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def date_range(days: int, today: Optional[date] = None) -> Dict[str, str]:
    """Search Console lags a day, so the window ends yesterday."""
    end = (today or date.today()) - timedelta(days=1)
    start = end - timedelta(days=days)
    return {"startDate": start.isoformat(), "endDate": end.isoformat()}


def build_query(days: int, keywords: Optional[Sequence[str]] = None, today: Optional[date] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        **date_range(days, today),
        "dimensions": ["query", "page"],
        "rowLimit": ROW_LIMIT,
    }
    if keywords:
        body["dimensionFilterGroups"] = [{
            "filters": [
                {"dimension": "query", "operator": "equals", "expression": kw}
                for kw in keywords
            ],
        }]
    return body


def _row_from_api(row: Dict[str, Any]) -> PerformanceRow:
    keys = row.get("keys") or []
    return PerformanceRow(
        keyword=keys[0] if len(keys) > 0 and keys[0] is not None else "",
        page=keys[1] if len(keys) > 1 and keys[1] is not None else "",
        clicks=int(row.get("clicks") or 0),
        impressions=int(row.get("impressions") or 0),
        ctr=float(row.get("ctr") or 0),
        position=float(row.get("position") or 0),
    )


async def query_performance(
    site_url: str,
    access_token: str,
    *,
    days: int = 28,
    keywords: Optional[Sequence[str]] = None,
    client: Optional[httpx.AsyncClient] = None,
    policy: Optional[RetryPolicy] = None,
) -> List[PerformanceRow]:
    """Query/page performance rows for the last `days` days."""
    endpoint = (
        "https://searchconsole.googleapis.com/webmasters/v3/sites/"
        f"{quote(site_url, safe='')}/searchAnalytics/query"
    )
    body = build_query(days, keywords)

    async with client_scope(client) as http:
        async def _query() -> httpx.Response:
            resp = await http.post(endpoint, json=body, headers={"Authorization": f"Bearer {access_token}"})
            raise_for_status(resp, "Failed to query performance")
            return resp

        resp = await with_retry(_query, policy)

    rows = json_body(resp, "Failed to query performance").get("rows") or []
    logger.info("Search Console returned %d rows for %s", len(rows), site_url)
    return [_row_from_api(r) for r in rows]
