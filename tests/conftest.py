import json
from typing import Any, Callable, Dict, List

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from seo_pilot.utils import display


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class SleepRecorder:
    """Stands in for asyncio.sleep; records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class Captured:
    def __init__(self):
        self.tables: List[Dict[str, Any]] = []
        self.messages: List[tuple] = []

    def lines(self, level: str) -> List[str]:
        return [m for lvl, m in self.messages if lvl == level]


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def captured(monkeypatch) -> Captured:
    """Record display output instead of printing it."""
    cap = Captured()
    for level in ("info", "success", "warn", "error"):
        monkeypatch.setattr(display, level, lambda msg, _lvl=level: cap.messages.append((_lvl, msg)))
    monkeypatch.setattr(display, "print_rule", lambda title=None: None)
    monkeypatch.setattr(
        display,
        "table",
        lambda headers, rows, title=None: cap.tables.append(
            {"headers": list(headers), "rows": [[str(c) for c in r] for r in rows], "title": title}
        ),
    )
    return cap


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run in an empty directory so history lands in tmp_path/.seo-pilot."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(scope="session")
def private_key_pem() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def service_account_file(tmp_path, private_key_pem):
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps({
        "type": "service_account",
        "project_id": "seo-pilot-test",
        "private_key_id": "abc123",
        "private_key": private_key_pem,
        "client_email": "bot@seo-pilot-test.iam.gserviceaccount.com",
        "client_id": "1234567890",
        "token_uri": "https://oauth2.googleapis.com/token",
    }), encoding="utf-8")
    return path


@pytest.fixture
def write_config(tmp_path):
    """Write a config JSON into tmp_path and return its path."""
    def _write(apis: Dict[str, Any] = None, **overrides) -> str:
        data = {
            "version": "1.0.0",
            "site": {"url": "https://example.com", "sitemap": "https://example.com/sitemap.xml"},
            "keywords": [],
            "apis": apis or {},
        }
        data.update(overrides)
        path = tmp_path / "seo-pilot.config.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)
    return _write


@pytest.fixture
def mock_http():
    """Factory for AsyncClients whose requests go to a handler function."""
    return make_client
