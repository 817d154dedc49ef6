# seo_pilot/commands/discover.py

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import httpx

from seo_pilot import history
from seo_pilot.apis.custom_search import SearchResult, custom_search
from seo_pilot.config import Config, load_config
from seo_pilot.errors import SeoPilotError
from seo_pilot.utils import display
from seo_pilot.utils.http import client_scope

logger = logging.getLogger(__name__)

DAILY_QUOTA = 100
QUOTA_WARN_RATIO = 0.9
DEDUPE_WINDOW_DAYS = 30

# ========== Directory query templates ==========
DIRECTORY_TEMPLATES = (
    '"{keyword}" "resources" "links"',
    '"{keyword}" "directory" OR "resource list"',
    '"{keyword}" "submit" OR "add your site"',
    '"best {keyword} websites"',
)


@dataclass
class CallBudget:
    limit: int = DAILY_QUOTA
    used: int = 0

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit


def _parse_ts(value: str) -> Optional[datetime]:
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def recently_seen_urls(entries: List[Dict], days: int = DEDUPE_WINDOW_DAYS, now: Optional[datetime] = None) -> Set[str]:
    """URLs recorded within the last `days` days."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
    seen: Set[str] = set()
    for entry in entries:
        ts = _parse_ts(entry.get("timestamp", ""))
        if ts and ts >= cutoff and entry.get("url"):
            seen.add(entry["url"])
    return seen


def categorize(result: SearchResult) -> str:
    title = result.title.lower()
    snippet = result.snippet.lower()
    category = "directory"
    if "resource" in title or "resource" in snippet:
        category = "resource-list"
    if "best" in title or "roundup" in snippet:
        category = "roundup"
    return category


def directory_queries(config: Config, keywords: List[str]) -> List[str]:
    if config.discover.directory_queries:
        return list(config.discover.directory_queries)
    return [t.format(keyword=kw) for kw in keywords for t in DIRECTORY_TEMPLATES]


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _quota_stop(budget: CallBudget) -> None:
    display.warn(f"Approaching Custom Search quota ({budget.limit}/day) - stopping")


async def _discover_forums(
    config: Config, keywords: List[str], budget: CallBudget, seen: Set[str],
    new_entries: List[Dict], http: httpx.AsyncClient,
) -> None:
    cs = config.apis.custom_search
    display.info("Running discovery for forums...")
    by_keyword: Dict[str, List[SearchResult]] = {}

    stopped = False
    for kw in keywords:
        by_keyword.setdefault(kw, [])
        for site in config.discover.sites:
            if budget.exhausted:
                _quota_stop(budget)
                stopped = True
                break
            query = f'site:{site} "{kw}"'
            display.info(f"Searching: {query}")
            results = await custom_search(query, cs.api_key, cs.engine_id, num=config.discover.results_per_keyword, client=http)
            budget.used += 1

            for r in results:
                if r.url in seen:
                    continue
                seen.add(r.url)
                by_keyword[kw].append(r)
                new_entries.append({"timestamp": history.now_iso(), "url": r.url, "keyword": kw, "type": "forum"})
        if stopped:
            break

    found = {kw: rs for kw, rs in by_keyword.items() if rs}
    if not found:
        display.info("No new forum results found")
        return
    display.print_rule("Forum Discovery Results")
    for kw, rs in found.items():
        display.table(["URL", "Title", "Snippet"], [[r.url, r.title, _truncate(r.snippet, 80)] for r in rs], title=kw)


async def _discover_directories(
    config: Config, keywords: List[str], budget: CallBudget, seen: Set[str],
    new_entries: List[Dict], http: httpx.AsyncClient,
) -> None:
    cs = config.apis.custom_search
    display.info("Running discovery for directories...")
    queries = directory_queries(config, keywords)
    if not queries:
        display.warn("No keywords configured - add keywords or discover.directoryQueries to the config")
        return

    rows: List[List[str]] = []
    for query in queries:
        if budget.exhausted:
            _quota_stop(budget)
            break
        display.info(f"Searching: {query}")
        results = await custom_search(query, cs.api_key, cs.engine_id, num=config.discover.results_per_keyword, client=http)
        budget.used += 1

        for r in results:
            if r.url in seen:
                continue
            seen.add(r.url)
            rows.append([r.url, r.title, _truncate(r.snippet, 60), categorize(r)])
            new_entries.append({"timestamp": history.now_iso(), "url": r.url, "type": "directory"})

    if not rows:
        display.info("No new directory results found")
        return
    display.print_rule("Directory Discovery Results")
    display.table(["URL", "Title", "Snippet", "Type"], rows)


async def run_discover(
    config_path: Optional[str] = None,
    *,
    type: str = "forums",
    keyword: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """
    Link-building opportunities via Google Custom Search.

      • forums: site:<site> "<keyword>" for every keyword and configured site.
      • directories: discover.directoryQueries, or templates built from keywords.
      • At most 100 calls per run; URLs seen in the last 30 days are skipped.
    """
    try:
        config = load_config(config_path)
        if not config.apis.custom_search:
            display.warn("Google Custom Search API not configured - skipping discover")
            display.info('Run "seo-pilot setup" to configure Custom Search API')
            return 0

        keywords = list(config.keywords)
        if keyword:
            keywords = [k for k in keywords if k == keyword]
            if not keywords:
                display.warn(f'Keyword "{keyword}" not found in config')
                return 0

        seen = recently_seen_urls(history.read_history(history.DISCOVER_HISTORY))
        budget = CallBudget()
        new_entries: List[Dict] = []

        async with client_scope(client) as http:
            if type in ("forums", "all"):
                await _discover_forums(config, keywords, budget, seen, new_entries, http)
            if type in ("directories", "all"):
                await _discover_directories(config, keywords, budget, seen, new_entries, http)
    except (SeoPilotError, httpx.HTTPError) as e:
        logger.debug("discover failed", exc_info=True)
        display.error(f"Discover command failed: {e}")
        return 1

    if new_entries:
        history.append_history(history.DISCOVER_HISTORY, new_entries)
        display.success(f"Saved {len(new_entries)} new results to history")

    display.info(f"Total API calls: {budget.used}/{budget.limit}")
    if budget.used >= budget.limit * QUOTA_WARN_RATIO:
        display.warn("You are approaching the daily quota limit")
    return 0
