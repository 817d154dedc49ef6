import json
from unittest.mock import MagicMock

import requests

from seo_pilot.commands import setup as setup_cmd
from seo_pilot.commands.setup import SetupAnswers, build_config_files, run_setup
from seo_pilot.config import load_config


class ScriptedPrompter:
    """Answers questions from a queue; confirm() takes 'y'/'n' entries."""

    def __init__(self, answers):
        self.answers = list(answers)
        self.asked = []

    def ask(self, question):
        self.asked.append(question)
        return self.answers.pop(0)

    def confirm(self, question):
        self.asked.append(question)
        return self.answers.pop(0) == "y"


def _response(status=200, text=""):
    resp = MagicMock()
    resp.ok = 200 <= status < 400
    resp.status_code = status
    resp.text = text
    return resp


def test_build_config_files_uses_env_references():
    answers = SetupAnswers(
        site_url="https://example.com", sitemap_url="https://example.com/sitemap.xml", keywords=["a"],
        indexnow_key="k" * 32, google_service_account_path="./sa.json", google_site_url="sc-domain:example.com",
        bing_api_key="bing-secret", custom_search_api_key="cs-secret", custom_search_engine_id="engine",
    )
    config, env = build_config_files(answers)
    assert config["version"] == "1.0.0"
    assert config["apis"]["indexnow"] == {"key": "k" * 32}
    assert config["apis"]["google"] == {"serviceAccountPath": "./sa.json", "siteUrl": "sc-domain:example.com"}
    assert config["apis"]["bing"] == {"apiKey": "${BING_API_KEY}", "siteUrl": "https://example.com"}
    assert config["apis"]["customSearch"] == {"apiKey": "${CUSTOM_SEARCH_API_KEY}", "engineId": "${CUSTOM_SEARCH_ENGINE_ID}"}
    assert env == {"BING_API_KEY": "bing-secret", "CUSTOM_SEARCH_API_KEY": "cs-secret", "CUSTOM_SEARCH_ENGINE_ID": "engine"}


def test_generated_indexnow_key_is_32_hex():
    key = setup_cmd.generate_indexnow_key()
    assert len(key) == 32
    int(key, 16)


def test_full_wizard_writes_loadable_config(tmp_path, captured, monkeypatch, service_account_file):
    monkeypatch.setattr(setup_cmd, "generate_indexnow_key", lambda: "f" * 32)
    session = MagicMock()
    # first site URL is unreachable, second attempt succeeds
    session.head.side_effect = [requests.ConnectionError("down"), _response(200), _response(200)]
    session.get.return_value = _response(200, "f" * 32 + "\n")

    prompter = ScriptedPrompter([
        "https://bad.example.com", "https://example.com",
        "https://example.com/sitemap.xml",
        "seo tools, rank tracking ,",
        "y", "y",                                   # IndexNow + key deployed
        "y", str(service_account_file), "sc-domain:example.com",
        "y", "bing-secret",
        "y", "cs-secret", "engine-1",
    ])
    config_path = tmp_path / "seo-pilot.config.json"

    assert run_setup(str(config_path), prompter=prompter, session=session) == 0

    session.get.assert_called_once_with("https://example.com/" + "f" * 32 + ".txt", timeout=setup_cmd.REQUEST_TIMEOUT_S)
    written = json.loads(config_path.read_text(encoding="utf-8"))
    assert written["keywords"] == ["seo tools", "rank tracking"]
    assert written["apis"]["indexnow"]["key"] == "f" * 32
    env_text = (tmp_path / ".env.local").read_text(encoding="utf-8")
    assert "BING_API_KEY=bing-secret\n" in env_text

    config = load_config(config_path, environ={})
    assert config.apis.bing.api_key == "bing-secret"
    assert config.apis.custom_search.engine_id == "engine-1"
    assert "Site URL is not reachable (expected 200 response)" in captured.lines("error")


def test_minimal_wizard_skips_every_api(tmp_path, captured):
    session = MagicMock()
    session.head.return_value = _response(200)
    prompter = ScriptedPrompter(["https://example.com", "https://example.com/sitemap.xml", "", "n", "n", "n", "n"])
    config_path = tmp_path / "seo-pilot.config.json"

    assert run_setup(str(config_path), prompter=prompter, session=session) == 0
    assert json.loads(config_path.read_text(encoding="utf-8"))["apis"] == {}
    assert not (tmp_path / ".env.local").exists()
    assert "No APIs configured. Commands will run with limited functionality." in captured.lines("warn")


def test_indexnow_key_mismatch_then_skip(captured):
    session = MagicMock()
    session.get.return_value = _response(200, "wrong")
    prompter = ScriptedPrompter(["y", "y", "n"])
    assert setup_cmd.prompt_indexnow(prompter, session, "https://example.com") is None
    assert "Key file content does not match the generated key" in captured.lines("error")


def test_invalid_service_account_file(tmp_path, captured):
    bad = tmp_path / "sa.json"
    bad.write_text(json.dumps({"client_email": "x@y.z"}), encoding="utf-8")
    prompter = ScriptedPrompter(["y", str(bad)])
    assert setup_cmd.prompt_google(prompter) == (None, None)
    assert "Invalid service account file (missing client_email or private_key)" in captured.lines("error")
