# seo_pilot/commands/inspect.py

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import httpx

from seo_pilot import history
from seo_pilot.apis import search_console
from seo_pilot.apis.google_inspection import InspectionResult, inspect_url
from seo_pilot.config import load_config
from seo_pilot.errors import SeoPilotError
from seo_pilot.google_auth import GoogleAuth
from seo_pilot.utils import display
from seo_pilot.utils.http import client_scope
from seo_pilot.utils.sitemap import fetch_sitemap_urls

logger = logging.getLogger(__name__)

PAUSE_BETWEEN_URLS_S = 1.0


def _history_entry(r: InspectionResult) -> dict:
    return {
        "timestamp": history.now_iso(),
        "url": r.url,
        "verdict": r.verdict,
        "lastCrawlTime": r.last_crawl_time,
        "indexingState": r.indexing_state,
        "mobileUsability": r.mobile_usability,
    }


async def run_inspect(
    config_path: Optional[str] = None,
    *,
    url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """
    URL Inspection for one page (--url) or every sitemap URL.

      • Inspections run one at a time with a 1s pause in between.
      • A failed URL is collected and reported; the others still count.
      • Exit 1 if any inspection failed.
    """
    try:
        config = load_config(config_path)
        google = config.apis.google
        if not google:
            display.error("Google Search Console is not configured")
            display.info('Run "seo-pilot setup" to configure Google integration')
            return 1

        async with client_scope(client) as http:
            display.info("Authenticating with Google...")
            auth = GoogleAuth(google.service_account_path, client=http)
            token = await auth.get_access_token([search_console.SCOPE])

            if url:
                urls = [url]
                display.info(f"Inspecting single URL: {url}")
            else:
                display.info("Fetching URLs from sitemap...")
                urls = await fetch_sitemap_urls(config.site.sitemap, client=http)
                display.info(f"Found {len(urls)} URLs to inspect")

            if not urls:
                display.warn("No URLs to inspect")
                return 0

            results: List[InspectionResult] = []
            errors: List[str] = []
            for i, page in enumerate(urls):
                display.info(f"Inspecting {i + 1}/{len(urls)}: {page}")
                try:
                    results.append(await inspect_url(page, google.site_url, token, client=http))
                except (SeoPilotError, httpx.HTTPError) as e:
                    errors.append(f"{page}: {e}")
                    logger.error("Failed to inspect %s: %s", page, e)
                if i < len(urls) - 1:
                    await sleep(PAUSE_BETWEEN_URLS_S)
    except (SeoPilotError, httpx.HTTPError) as e:
        logger.debug("inspect failed", exc_info=True)
        display.error(f"Inspect command failed: {e}")
        return 1

    if results:
        display.table(
            ["URL", "Verdict", "Last Crawl", "Indexing State", "Mobile OK"],
            [[r.url, r.verdict, r.last_crawl_time, r.indexing_state, r.mobile_usability] for r in results],
        )
        history.append_history(history.INSPECT_HISTORY, [_history_entry(r) for r in results])
        display.success(f"Inspected {len(results)} URLs and saved to .seo-pilot/{history.INSPECT_HISTORY}")

    if errors:
        display.error(f"Failed to inspect {len(errors)} URLs:")
        for err in errors:
            display.error(f"  {err}")
        return 1
    return 0
