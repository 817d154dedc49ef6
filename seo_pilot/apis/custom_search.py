# seo_pilot/apis/custom_search.py

from dataclasses import dataclass
from typing import List, Optional

import httpx

from seo_pilot.utils.http import client_scope, json_body, raise_for_status
from seo_pilot.utils.retry import RetryPolicy, with_retry

CUSTOM_SEARCH_ENDPOINT = "https://www.googleapis.com/customsearch/v1"


@dataclass
class SearchResult:
    url: str
    title: str
    snippet: str


async def custom_search(
    query: str,
    api_key: str,
    engine_id: str,
    *,
    num: int = 5,
    client: Optional[httpx.AsyncClient] = None,
    policy: Optional[RetryPolicy] = None,
) -> List[SearchResult]:
    params = {"q": query, "key": api_key, "cx": engine_id, "num": num}

    async with client_scope(client) as http:
        async def _search() -> httpx.Response:
            resp = await http.get(CUSTOM_SEARCH_ENDPOINT, params=params)
            raise_for_status(resp, "Google Custom Search failed")
            return resp

        resp = await with_retry(_search, policy)

    items = json_body(resp, "Google Custom Search failed").get("items") or []
    return [
        SearchResult(
            url=item.get("link", ""),
            title=item.get("title", ""),
            snippet=item.get("snippet", ""),
        )
        for item in items
    ]
