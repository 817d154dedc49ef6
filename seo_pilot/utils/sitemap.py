# seo_pilot/utils/sitemap.py

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Set
from xml.etree import ElementTree as ET  # simple sitemap parsing

import httpx

from seo_pilot.utils.http import client_scope, raise_for_status

logger = logging.getLogger(__name__)

_LOC_RE = re.compile(r"<loc>\s*(.*?)\s*</loc>", re.S)
_SITEMAP_LOC_RE = re.compile(r"<sitemap>.*?<loc>\s*(.*?)\s*</loc>.*?</sitemap>", re.S)
MAX_DEPTH = 5


@dataclass
class ParsedSitemap:
    is_index: bool
    locs: List[str] = field(default_factory=list)


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_sitemap(text: str) -> ParsedSitemap:
    """
    Extract <loc> values from a urlset or a sitemapindex.
    Namespaces are ignored; malformed XML falls back to a regex scan.
    """
    try:
        root = ET.fromstring((text or "").strip().encode("utf-8"))
    except ET.ParseError:
        index_locs = _SITEMAP_LOC_RE.findall(text or "")
        if index_locs:
            return ParsedSitemap(is_index=True, locs=index_locs)
        return ParsedSitemap(is_index=False, locs=_LOC_RE.findall(text or ""))

    is_index = _local(root.tag) == "sitemapindex"
    locs = [
        (el.text or "").strip()
        for el in root.iter()
        if _local(el.tag) == "loc" and (el.text or "").strip()
    ]
    return ParsedSitemap(is_index=is_index, locs=locs)


def _dedupe(urls: List[str]) -> List[str]:
    seen: Set[str] = set()
    out: List[str] = []
    for u in urls:
        if u not in seen:
            seen.add(u)
            out.append(u)
    return out


async def fetch_sitemap_urls(
    sitemap_url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    _depth: int = 0,
) -> List[str]:
    """Page URLs listed by a sitemap, following sitemap indexes; deduplicated in first-seen order."""
    async with client_scope(client) as http:
        resp = await http.get(sitemap_url)
        raise_for_status(resp, f"Failed to fetch sitemap {sitemap_url}")
        parsed = parse_sitemap(resp.text)

        if not parsed.is_index:
            return _dedupe(parsed.locs)

        if _depth >= MAX_DEPTH:
            logger.warning("Sitemap index nesting deeper than %d at %s; not descending", MAX_DEPTH, sitemap_url)
            return []

        logger.info("Sitemap index %s lists %d child sitemaps", sitemap_url, len(parsed.locs))
        children = await asyncio.gather(
            *(fetch_sitemap_urls(child, client=http, _depth=_depth + 1) for child in parsed.locs)
        )
    return _dedupe([u for child in children for u in child])
