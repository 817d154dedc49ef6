# seo_pilot/commands/audit.py

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from seo_pilot import history
from seo_pilot.config import load_config
from seo_pilot.errors import SeoPilotError
from seo_pilot.utils import display
from seo_pilot.utils.http import client_scope
from seo_pilot.utils.sitemap import fetch_sitemap_urls, parse_sitemap

logger = logging.getLogger(__name__)

ALL_CHECKS = ("meta", "schema", "links", "sitemap")
TITLE_RANGE = (50, 60)
DESCRIPTION_RANGE = (120, 160)
MIN_INTERNAL_LINKS = 3
SITEMAP_SAMPLE_SIZE = 10

ICONS = {"pass": "✓", "warn": "⚠", "fail": "✗"}


@dataclass
class CheckResult:
    status: str = "pass"        # pass / warn / fail
    messages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"status": self.status, "messages": list(self.messages)}


def _worst(*statuses: str) -> str:
    if "fail" in statuses:
        return "fail"
    if "warn" in statuses:
        return "warn"
    return "pass"


def is_http_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# ========== Page checks ==========

def _meta_content(soup: BeautifulSoup, **attrs) -> str:
    tag = soup.find("meta", attrs=attrs)
    return (tag.get("content") or "") if tag else ""


def audit_meta(html: str) -> CheckResult:
    """Title and description lengths plus the three core Open Graph tags."""
    soup = BeautifulSoup(html, "html.parser")
    result = CheckResult()
    statuses: List[str] = []

    title = soup.title.get_text() if soup.title else ""
    lo, hi = TITLE_RANGE
    if not title:
        result.messages.append("Missing <title> tag")
        statuses.append("fail")
    elif not lo <= len(title) <= hi:
        result.messages.append(f"Title length {len(title)} chars (ideal: {lo}-{hi})")
        statuses.append("warn")
    else:
        result.messages.append("Title length optimal")

    description = _meta_content(soup, name="description")
    lo, hi = DESCRIPTION_RANGE
    if not description:
        result.messages.append("Missing meta description")
        statuses.append("fail")
    elif not lo <= len(description) <= hi:
        result.messages.append(f"Description length {len(description)} chars (ideal: {lo}-{hi})")
        statuses.append("warn")
    else:
        result.messages.append("Description length optimal")

    for prop in ("og:title", "og:description", "og:image"):
        if not _meta_content(soup, property=prop):
            result.messages.append(f"Missing {prop}")
            statuses.append("warn")

    result.status = _worst(*statuses)
    return result


def audit_schema(html: str) -> CheckResult:
    soup = BeautifulSoup(html, "html.parser")
    scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
    if not scripts:
        return CheckResult(status="warn", messages=["No structured data found"])

    result = CheckResult()
    for script in scripts:
        content = script.string or script.get_text()
        if not content or not content.strip():
            continue
        try:
            data = json.loads(content)
        except ValueError:
            result.messages.append("Invalid JSON in structured data")
            result.status = "warn"
            continue
        schema_type = data.get("@type") if isinstance(data, dict) else None
        if schema_type:
            result.messages.append(f"Found schema: {schema_type}")
        else:
            result.messages.append("Schema missing @type property")
            result.status = "warn"
    return result


def audit_links(html: str, page_url: str) -> CheckResult:
    """Counts <a href> targets on the page's own host."""
    soup = BeautifulSoup(html, "html.parser")
    host = urlparse(page_url).hostname
    internal = 0
    for a in soup.find_all("a", href=True):
        try:
            if urlparse(urljoin(page_url, a["href"])).hostname == host:
                internal += 1
        except ValueError:
            continue

    result = CheckResult(messages=[f"Found {internal} internal links"])
    if internal < MIN_INTERNAL_LINKS:
        result.messages.append(f"Fewer than {MIN_INTERNAL_LINKS} internal links detected")
        result.status = "warn"
    return result


# ========== Sitemap check ==========

async def audit_sitemap(sitemap_url: str, http: httpx.AsyncClient) -> CheckResult:
    """
    Well-formedness, URL count and a HEAD sample of up to 10 URLs.
    A sitemap index only reports how many child sitemaps it lists.
    """
    result = CheckResult()
    try:
        resp = await http.get(sitemap_url)
        if not resp.is_success:
            return CheckResult(status="fail", messages=[f"Sitemap HTTP {resp.status_code}"])
        text = resp.text

        if "<?xml" not in text or ("</urlset>" not in text and "</sitemapindex>" not in text):
            result.messages.append("Sitemap is not well-formed XML")
            result.status = "warn"
        else:
            result.messages.append("Sitemap is well-formed")

        parsed = parse_sitemap(text)
        if parsed.is_index:
            result.messages.append(f"Sitemap index contains {len(parsed.locs)} child sitemaps")
            return result

        result.messages.append(f"Sitemap contains {len(parsed.locs)} URLs")
        samples = parsed.locs[:SITEMAP_SAMPLE_SIZE]
        ok = 0
        for url in samples:
            try:
                head = await http.head(url)
            except httpx.HTTPError as e:
                logger.debug("HEAD %s failed: %s", url, e)
                continue
            if head.is_success:
                ok += 1
        result.messages.append(f"{ok}/{len(samples)} sampled URLs returned 200")
        if ok < len(samples):
            result.status = "warn"
    except httpx.HTTPError as e:
        result.messages.append(f"Sitemap check failed: {e}")
        result.status = "fail"
    return result


# ========== Command ==========

def _print_report(reports: List[Dict]) -> None:
    display.print_rule("Audit Report")
    for report in reports:
        display.info("")
        display.info(report["url"])
        for name, check in report["checks"].items():
            display.info(f"  {ICONS[check.status]} {name}:")
            for msg in check.messages:
                display.info(f"    - {msg}")


def summarize(reports: List[Dict]) -> Dict[str, int]:
    counts = {"pass": 0, "warn": 0, "fail": 0}
    for report in reports:
        for check in report["checks"].values():
            counts[check.status] += 1
    counts["total"] = sum(counts.values())
    return counts


async def run_audit(
    config_path: Optional[str] = None,
    *,
    url: Optional[str] = None,
    checks: Optional[str] = None,
    base_url: Optional[str] = None,
    sitemap: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    try:
        config = load_config(config_path)

        sitemap_url = config.site.sitemap
        if base_url is not None:
            if not is_http_url(base_url):
                display.error(f"Invalid --base-url: {base_url} (must be an http(s) URL)")
                return 1
            sitemap_url = base_url.rstrip("/") + "/sitemap.xml"
        if sitemap is not None:
            if not is_http_url(sitemap):
                display.error(f"Invalid --sitemap: {sitemap} (must be an http(s) URL)")
                return 1
            sitemap_url = sitemap

        if not checks or checks == "all":
            selected = list(ALL_CHECKS)
            # one page audit: sitemap only when asked for
            if url:
                selected.remove("sitemap")
        else:
            selected = [c.strip() for c in checks.split(",") if c.strip()]
            unknown = [c for c in selected if c not in ALL_CHECKS]
            if unknown:
                display.error(f"Unknown checks: {', '.join(unknown)} (choose from {', '.join(ALL_CHECKS)})")
                return 1

        reports: List[Dict] = []
        async with client_scope(client) as http:
            if url:
                urls = [url]
            else:
                display.info(f"Fetching URLs from sitemap {sitemap_url}...")
                urls = await fetch_sitemap_urls(sitemap_url, client=http)
                display.info(f"Found {len(urls)} URLs in sitemap")

            sitemap_result: Optional[CheckResult] = None
            if "sitemap" in selected:
                display.info("Auditing sitemap...")
                sitemap_result = await audit_sitemap(sitemap_url, http)

            for page in urls:
                display.info(f"Auditing {page}...")
                try:
                    resp = await http.get(page)
                except httpx.HTTPError as e:
                    display.error(f"  Failed to audit: {e}")
                    continue
                if not resp.is_success:
                    display.warn(f"  HTTP {resp.status_code} - skipping checks")
                    continue

                html = resp.text
                page_checks: Dict[str, CheckResult] = {}
                if "meta" in selected:
                    page_checks["meta"] = audit_meta(html)
                if "schema" in selected:
                    page_checks["schema"] = audit_schema(html)
                if "links" in selected:
                    page_checks["links"] = audit_links(html, page)
                if sitemap_result is not None:
                    page_checks["sitemap"] = sitemap_result
                reports.append({"url": page, "checks": page_checks})
    except (SeoPilotError, httpx.HTTPError) as e:
        logger.debug("audit failed", exc_info=True)
        display.error(f"Audit command failed: {e}")
        return 1

    _print_report(reports)
    counts = summarize(reports)
    display.table(
        ["Status", "Count"],
        [["Pass", counts["pass"]], ["Warn", counts["warn"]], ["Fail", counts["fail"]], ["Total", counts["total"]]],
        title="Summary",
    )

    if reports:
        history.append_history(
            history.AUDIT_HISTORY,
            [
                {
                    "timestamp": history.now_iso(),
                    "url": r["url"],
                    "results": {name: c.to_dict() for name, c in r["checks"].items()},
                }
                for r in reports
            ],
        )
        display.success("Audit results saved to history")
    return 0
