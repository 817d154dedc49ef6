# seo_pilot/utils/http.py

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from seo_pilot import __version__
from seo_pilot.errors import ApiError

USER_AGENT = f"seo-pilot/{__version__}"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)


def new_client(**kwargs) -> httpx.AsyncClient:
    kwargs.setdefault("timeout", DEFAULT_TIMEOUT)
    kwargs.setdefault("follow_redirects", True)
    headers = {"User-Agent": USER_AGENT}
    headers.update(kwargs.pop("headers", {}) or {})
    return httpx.AsyncClient(headers=headers, **kwargs)


@asynccontextmanager
async def client_scope(client: Optional[httpx.AsyncClient] = None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield `client` untouched, or a short-lived one that is closed on exit."""
    if client is not None:
        yield client
        return
    async with new_client() as owned:
        yield owned


def raise_for_status(resp: httpx.Response, what: str) -> None:
    """Turn a non-2xx response into an ApiError carrying the status code."""
    if resp.is_success:
        return
    text = (resp.text or "").strip()[:500]
    raise ApiError(f"{what}: {resp.status_code} {text}".rstrip(), status=resp.status_code)


def json_body(resp: httpx.Response, what: str) -> Dict[str, Any]:
    """Decoded JSON object of a 2xx response; anything else is an ApiError."""
    try:
        data = resp.json() if resp.content else {}
    except ValueError as e:
        raise ApiError(f"{what}: response is not valid JSON ({e})", status=resp.status_code) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ApiError(f"{what}: expected a JSON object, got {type(data).__name__}", status=resp.status_code)
    return data
