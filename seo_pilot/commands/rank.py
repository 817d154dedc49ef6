# seo_pilot/commands/rank.py

import logging
from typing import List, Optional

import httpx

from seo_pilot import history
from seo_pilot.apis import search_console
from seo_pilot.apis.search_console import PerformanceRow, query_performance
from seo_pilot.config import load_config
from seo_pilot.errors import SeoPilotError
from seo_pilot.google_auth import GoogleAuth
from seo_pilot.utils import display
from seo_pilot.utils.http import client_scope

logger = logging.getLogger(__name__)


def format_row(r: PerformanceRow) -> List[str]:
    return [
        r.keyword,
        r.page,
        str(r.clicks),
        str(r.impressions),
        f"{r.position:.1f}",
        f"{r.ctr * 100:.2f}%",
    ]


async def run_rank(
    config_path: Optional[str] = None,
    *,
    days: int = 28,
    keyword: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """Search Console clicks/impressions/position per query and page."""
    try:
        config = load_config(config_path)
        google = config.apis.google
        if not google:
            display.warn("Google is not configured - skipping rank")
            display.info('Run "seo-pilot setup" to configure Google integration')
            return 0

        # --keyword wins over config keywords; neither means no filter
        keywords = [keyword] if keyword else (list(config.keywords) or None)

        async with client_scope(client) as http:
            display.info("Authenticating with Google...")
            auth = GoogleAuth(google.service_account_path, client=http)
            token = await auth.get_access_token([search_console.SCOPE])

            suffix = f" (filtering by {len(keywords)} keywords)" if keywords else ""
            display.info(f"Querying Search Console performance for last {days} days{suffix}...")
            rows = await query_performance(google.site_url, token, days=days, keywords=keywords, client=http)
    except (SeoPilotError, httpx.HTTPError) as e:
        logger.debug("rank failed", exc_info=True)
        display.error(f"Rank command failed: {e}")
        return 1

    if not rows:
        display.warn("No performance data found")
        return 0

    display.table(
        ["Keyword", "Page", "Clicks", "Impressions", "Avg Position", "CTR"],
        [format_row(r) for r in rows],
    )
    history.append_history(
        history.RANK_HISTORY,
        [{"timestamp": history.now_iso(), **r.to_dict()} for r in rows],
    )
    display.success(f"Retrieved {len(rows)} performance rows and saved to .seo-pilot/{history.RANK_HISTORY}")
    return 0
