import asyncio

import httpx
import pytest

from seo_pilot.errors import ApiError
from seo_pilot.utils.sitemap import fetch_sitemap_urls, parse_sitemap

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://example.com/</loc></url>
  <url><loc> https://example.com/about </loc></url>
</urlset>"""


def _index(*children):
    locs = "".join(f"<sitemap><loc>{c}</loc></sitemap>" for c in children)
    return f'<?xml version="1.0"?><sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{locs}</sitemapindex>'


def _urlset(*urls):
    locs = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return f'<?xml version="1.0"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{locs}</urlset>'


def test_parse_urlset():
    parsed = parse_sitemap(URLSET)
    assert parsed.is_index is False
    assert parsed.locs == ["https://example.com/", "https://example.com/about"]


def test_parse_index():
    parsed = parse_sitemap(_index("https://example.com/a.xml", "https://example.com/b.xml"))
    assert parsed.is_index is True
    assert parsed.locs == ["https://example.com/a.xml", "https://example.com/b.xml"]


def test_parse_malformed_falls_back_to_regex():
    parsed = parse_sitemap("<urlset><url><loc>https://example.com/x</loc></url><broken")
    assert parsed.locs == ["https://example.com/x"]


def test_fetch_follows_index_and_dedupes(mock_http):
    pages = {
        "https://example.com/sitemap.xml": _index("https://example.com/s1.xml", "https://example.com/s2.xml"),
        "https://example.com/s1.xml": _urlset("https://example.com/a", "https://example.com/b"),
        "https://example.com/s2.xml": _urlset("https://example.com/b", "https://example.com/c"),
    }

    async def run():
        async with mock_http(lambda r: httpx.Response(200, text=pages[str(r.url)])) as client:
            return await fetch_sitemap_urls("https://example.com/sitemap.xml", client=client)

    assert asyncio.run(run()) == ["https://example.com/a", "https://example.com/b", "https://example.com/c"]


def test_fetch_error_raises(mock_http):
    async def run():
        async with mock_http(lambda r: httpx.Response(404, text="missing")) as client:
            return await fetch_sitemap_urls("https://example.com/sitemap.xml", client=client)

    with pytest.raises(ApiError) as exc_info:
        asyncio.run(run())
    assert exc_info.value.status == 404
