# seo_pilot/commands/setup.py

import json
import logging
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
from rich.prompt import Confirm, Prompt

from seo_pilot.config.loader import DEFAULT_CONFIG_FILE, ENV_FILE
from seo_pilot.utils import display
from seo_pilot.utils.http import USER_AGENT

logger = logging.getLogger(__name__)

CONFIG_VERSION = "1.0.0"
REQUEST_TIMEOUT_S = 15


class Prompter:
    """Interactive questions via rich.prompt; swap it out to script the wizard."""

    def ask(self, question: str) -> str:
        return (Prompt.ask(question, default="", show_default=False) or "").strip()

    def confirm(self, question: str) -> bool:
        return Confirm.ask(question, default=False)


@dataclass
class SetupAnswers:
    site_url: str = ""
    sitemap_url: str = ""
    keywords: List[str] = field(default_factory=list)
    indexnow_key: Optional[str] = None
    google_service_account_path: Optional[str] = None
    google_site_url: Optional[str] = None
    bing_api_key: Optional[str] = None
    custom_search_api_key: Optional[str] = None
    custom_search_engine_id: Optional[str] = None

    @property
    def any_api(self) -> bool:
        return any([
            self.indexnow_key, self.google_service_account_path,
            self.bing_api_key, self.custom_search_api_key,
        ])


def url_reachable(url: str, session: requests.Session) -> bool:
    try:
        resp = session.head(url, timeout=REQUEST_TIMEOUT_S, allow_redirects=True)
    except requests.RequestException as e:
        logger.debug("HEAD %s failed: %s", url, e)
        return False
    return resp.ok


def _ask_reachable_url(prompter: Prompter, session: requests.Session, label: str, example: str) -> str:
    while True:
        url = prompter.ask(f"{label} (e.g., {example})")
        if not url:
            display.error(f"{label} is required")
            continue
        display.info(f"Validating {label.lower()}...")
        if url_reachable(url, session):
            display.success(f"{label} is reachable")
            return url
        display.error(f"{label} is not reachable (expected 200 response)")


def prompt_site(prompter: Prompter, session: requests.Session) -> Tuple[str, str]:
    display.print_rule("Site Configuration")
    site_url = _ask_reachable_url(prompter, session, "Site URL", "https://example.com")
    sitemap_url = _ask_reachable_url(prompter, session, "Sitemap URL", "https://example.com/sitemap.xml")
    return site_url, sitemap_url


def prompt_keywords(prompter: Prompter) -> List[str]:
    display.print_rule("Target Keywords")
    raw = prompter.ask("Target keywords (comma-separated)")
    return [k.strip() for k in raw.split(",") if k.strip()]


def generate_indexnow_key() -> str:
    return secrets.token_hex(16)


def prompt_indexnow(prompter: Prompter, session: requests.Session, site_url: str) -> Optional[str]:
    """
    Generate a key, ask the user to publish it, then fetch it back.
      • key file: https://<host>/<key>.txt containing only the key
      • declining at any point skips IndexNow
    """
    display.print_rule("IndexNow Configuration")
    if not prompter.confirm("Configure IndexNow?"):
        return None

    key = generate_indexnow_key()
    key_file_url = f"https://{urlparse(site_url).netloc}/{key}.txt"
    display.info(f"Generated IndexNow key: {key}")
    display.info(f'Please add a file named "{key}.txt" to your site\'s public directory.')
    display.info(f"The file should contain just: {key}")
    display.info(f"It should be accessible at: {key_file_url}")

    while True:
        if not prompter.confirm("Have you deployed the key file?"):
            display.warn("Skipping IndexNow configuration. You can configure it later.")
            return None
        display.info("Validating key file...")
        try:
            resp = session.get(key_file_url, timeout=REQUEST_TIMEOUT_S)
        except requests.RequestException as e:
            logger.debug("Key file fetch failed: %s", e)
            display.error("Failed to fetch key file")
            continue
        if not resp.ok:
            display.error(f"Key file is not accessible (HTTP {resp.status_code})")
        elif resp.text.strip() != key:
            display.error("Key file content does not match the generated key")
        else:
            display.success("Key file is valid")
            return key


def validate_service_account_file(path: str) -> bool:
    try:
        data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    except (OSError, ValueError):
        display.error("Failed to read or parse service account file")
        return False
    if not isinstance(data, dict) or not data.get("client_email") or not data.get("private_key"):
        display.error("Invalid service account file (missing client_email or private_key)")
        return False
    display.success("Service account file is valid")
    return True


def prompt_google(prompter: Prompter) -> Tuple[Optional[str], Optional[str]]:
    display.print_rule("Google Cloud Configuration")
    if not prompter.confirm("Configure Google Cloud APIs?"):
        return None, None

    display.info("Please complete the following steps:")
    display.info("1. Create a project: https://console.cloud.google.com/projectcreate")
    display.info("2. Enable the Web Search Indexing API, Google Search Console API and Custom Search API")
    display.info("3. Create a service account and download the JSON key file")
    display.info("4. Add the service account email as Owner in Search Console")

    sa_path = prompter.ask("Path to service account JSON file (or press Enter to skip)")
    if not sa_path or not validate_service_account_file(sa_path):
        return None, None

    site_url = prompter.ask("Search Console site URL (e.g., sc-domain:example.com)")
    if not site_url:
        display.warn("Skipping Google Cloud configuration (site URL required)")
        return None, None
    return sa_path, site_url


def prompt_bing(prompter: Prompter) -> Optional[str]:
    display.print_rule("Bing Webmaster Configuration")
    if not prompter.confirm("Configure Bing Webmaster?"):
        return None
    display.info("To get your API key: https://www.bing.com/webmasters > Settings > API Access")
    return prompter.ask("Bing API key (or press Enter to skip)") or None


def prompt_custom_search(prompter: Prompter) -> Tuple[Optional[str], Optional[str]]:
    display.print_rule("Custom Search Engine Configuration")
    if not prompter.confirm("Configure Custom Search Engine?"):
        return None, None
    display.info("Create an engine at https://programmablesearchengine.google.com/ and note its Engine ID")
    api_key = prompter.ask("Custom Search API key (or press Enter to skip)")
    if not api_key:
        return None, None
    engine_id = prompter.ask("Custom Search Engine ID (or press Enter to skip)")
    if not engine_id:
        return None, None
    return api_key, engine_id


# ========== Output files ==========

def build_config_files(answers: SetupAnswers) -> Tuple[Dict, Dict[str, str]]:
    """Config JSON (secrets as ${VAR} references) and the env vars those references need."""
    apis: Dict[str, Dict] = {}
    env: Dict[str, str] = {}

    if answers.indexnow_key:
        apis["indexnow"] = {"key": answers.indexnow_key}
    if answers.google_service_account_path and answers.google_site_url:
        apis["google"] = {
            "serviceAccountPath": answers.google_service_account_path,
            "siteUrl": answers.google_site_url,
        }
    if answers.bing_api_key:
        apis["bing"] = {"apiKey": "${BING_API_KEY}", "siteUrl": answers.site_url}
        env["BING_API_KEY"] = answers.bing_api_key
    if answers.custom_search_api_key and answers.custom_search_engine_id:
        apis["customSearch"] = {
            "apiKey": "${CUSTOM_SEARCH_API_KEY}",
            "engineId": "${CUSTOM_SEARCH_ENGINE_ID}",
        }
        env["CUSTOM_SEARCH_API_KEY"] = answers.custom_search_api_key
        env["CUSTOM_SEARCH_ENGINE_ID"] = answers.custom_search_engine_id

    config = {
        "version": CONFIG_VERSION,
        "site": {"url": answers.site_url, "sitemap": answers.sitemap_url},
        "keywords": list(answers.keywords),
        "apis": apis,
    }
    return config, env


def write_config_files(answers: SetupAnswers, config_path: Path) -> List[Path]:
    config, env = build_config_files(answers)
    written = []

    config_path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    display.success(f"Wrote configuration to {config_path}")
    written.append(config_path)

    if env:
        env_path = config_path.parent / ENV_FILE
        env_path.write_text("".join(f"{k}={v}\n" for k, v in env.items()), encoding="utf-8")
        display.success(f"Wrote environment variables to {env_path}")
        written.append(env_path)
    return written


def print_summary(answers: SetupAnswers) -> None:
    display.print_rule("Validating API Configuration")
    if answers.indexnow_key:
        display.success("IndexNow: Configured")
    if answers.google_service_account_path and answers.google_site_url:
        display.success("Google Cloud: Configured (service account file valid)")
    if answers.bing_api_key:
        display.success("Bing Webmaster: Configured (API key provided)")
    if answers.custom_search_api_key and answers.custom_search_engine_id:
        display.success("Custom Search Engine: Configured (credentials provided)")
    if not answers.any_api:
        display.warn("No APIs configured. Commands will run with limited functionality.")


def make_session() -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": USER_AGENT})
    return s


def run_setup(
    config_path: Optional[str] = None,
    *,
    prompter: Optional[Prompter] = None,
    session: Optional[requests.Session] = None,
) -> int:
    """Interactive wizard that writes seo-pilot.config.json and .env.local."""
    prompter = prompter or Prompter()
    session = session or make_session()
    target = Path(config_path or DEFAULT_CONFIG_FILE).expanduser().resolve()

    display.print_rule("SEO Pilot Setup Wizard")
    answers = SetupAnswers()
    answers.site_url, answers.sitemap_url = prompt_site(prompter, session)
    answers.keywords = prompt_keywords(prompter)
    answers.indexnow_key = prompt_indexnow(prompter, session, answers.site_url)
    answers.google_service_account_path, answers.google_site_url = prompt_google(prompter)
    answers.bing_api_key = prompt_bing(prompter)
    answers.custom_search_api_key, answers.custom_search_engine_id = prompt_custom_search(prompter)

    display.print_rule("Writing Configuration Files")
    try:
        write_config_files(answers, target)
    except OSError as e:
        display.error(f"Setup command failed: {e}")
        return 1
    print_summary(answers)

    display.print_rule("Setup Complete")
    display.success("Configuration files created successfully!")
    display.info("You can now run: seo-pilot <command>")
    display.info("Available commands: index, inspect, rank, discover, audit")
    return 0
