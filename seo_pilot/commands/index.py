# seo_pilot/commands/index.py

import logging
from typing import Dict, List, Optional

import httpx

from seo_pilot import history
from seo_pilot.apis import google_indexing
from seo_pilot.apis.bing_webmaster import submit_bing_urls
from seo_pilot.apis.google_indexing import submit_google_indexing
from seo_pilot.apis.indexnow import submit_indexnow
from seo_pilot.apis.results import SubmitResult
from seo_pilot.config import Config, load_config
from seo_pilot.errors import SeoPilotError
from seo_pilot.google_auth import GoogleAuth
from seo_pilot.utils import display
from seo_pilot.utils.http import client_scope
from seo_pilot.utils.sitemap import fetch_sitemap_urls

logger = logging.getLogger(__name__)

SERVICES = ("indexnow", "google", "bing")


def _history_entry(service: str, result: SubmitResult) -> Dict:
    return {
        "timestamp": history.now_iso(),
        "service": service,
        "urlCount": result.url_count,
        "success": result.success,
        "errors": list(result.errors),
    }


async def _submit_all(config: Config, urls: List[str], service: str, http: httpx.AsyncClient) -> List[Dict]:
    entries: List[Dict] = []
    apis = config.apis

    def record(name: str, result: SubmitResult) -> None:
        entry = _history_entry(name, result)
        entries.append(entry)
        history.append_history(history.INDEX_HISTORY, entry)

    if service in ("all", "indexnow"):
        if apis.indexnow:
            display.info("Submitting to IndexNow...")
            record("indexnow", await submit_indexnow(urls, apis.indexnow.key, config.site.url, client=http))
        else:
            display.warn("IndexNow not configured, skipping")

    if service in ("all", "google"):
        if apis.google:
            display.info("Submitting to Google Indexing API...")
            try:
                auth = GoogleAuth(apis.google.service_account_path, client=http)
                token = await auth.get_access_token([google_indexing.SCOPE])
            except (SeoPilotError, httpx.HTTPError) as e:
                logger.error("Google authentication failed: %s", e)
                display.error(f"Google authentication failed: {e}")
                record("google", SubmitResult(success=False, url_count=0, errors=[f"Authentication failed: {e}"]))
            else:
                record("google", await submit_google_indexing(urls, token, client=http))
        else:
            display.warn("Google Indexing API not configured, skipping")

    if service in ("all", "bing"):
        if apis.bing:
            display.info("Submitting to Bing Webmaster...")
            record("bing", await submit_bing_urls(urls, apis.bing.api_key, apis.bing.site_url, client=http))
        else:
            display.warn("Bing Webmaster API not configured, skipping")

    return entries


async def run_index(
    config_path: Optional[str] = None,
    *,
    service: str = "all",
    dry_run: bool = False,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """Submit every sitemap URL to the selected indexing services."""
    try:
        config = load_config(config_path)

        async with client_scope(client) as http:
            display.info("Fetching URLs from sitemap...")
            urls = await fetch_sitemap_urls(config.site.sitemap, client=http)
            display.info(f"Found {len(urls)} URLs")

            if dry_run:
                display.info("Dry run mode - URLs that would be submitted:")
                for url in urls:
                    display.info(url)
                return 0

            entries = await _submit_all(config, urls, service, http)
    except (SeoPilotError, httpx.HTTPError) as e:
        logger.debug("index failed", exc_info=True)
        display.error(f"Index command failed: {e}")
        return 1

    if not entries:
        display.warn("No services configured or selected")
        return 0

    display.table(
        ["Service", "URLs", "Status"],
        [[e["service"], str(e["urlCount"]), "Success" if e["success"] else "Failed"] for e in entries],
    )

    if all(e["success"] for e in entries):
        display.success("All submissions completed successfully")
        return 0

    display.error("Some submissions failed:")
    for e in entries:
        for err in e["errors"]:
            display.error(f"  {err}")
    return 1
