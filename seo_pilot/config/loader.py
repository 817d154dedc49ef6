# seo_pilot/config/loader.py

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Union

from dotenv import dotenv_values
from pydantic import ValidationError

from seo_pilot.config.schema import Config
from seo_pilot.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "seo-pilot.config.json"
ENV_FILE = ".env.local"

# ${VAR} or ${VAR:-default}
_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")
_DEFAULT_RE = re.compile(r"^([^:]+):-(.*)$", re.S)

# JSONC helpers: comments + trailing commas
_COMMENT_BLOCK_RE = re.compile(r"/\*.*?\*/", re.S)
_COMMENT_LINE_RE = re.compile(r"^\s*//.*$", re.M)
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


def load_env_file(env_path: Union[str, Path], environ: Optional[MutableMapping[str, str]] = None) -> None:
    """
    Copy KEY=VALUE pairs from `env_path` into the environment.
    Variables already set are left alone: explicit env always wins.
    """
    environ = os.environ if environ is None else environ
    path = Path(env_path)
    if not path.is_file():
        return
    for key, value in dotenv_values(path).items():
        if value is None or key in environ:
            continue
        environ[key] = value


def substitute_env_vars(obj: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """
    Replace ${VAR} / ${VAR:-default} inside every string of a JSON tree.
    A plain ${VAR} that is not set raises ConfigError.
    """
    environ = os.environ if environ is None else environ

    if isinstance(obj, dict):
        return {k: substitute_env_vars(v, environ) for k, v in obj.items()}
    if isinstance(obj, list):
        return [substitute_env_vars(item, environ) for item in obj]
    if not isinstance(obj, str):
        return obj

    def replacer(match: re.Match) -> str:
        expr = match.group(1)
        with_default = _DEFAULT_RE.match(expr)
        if with_default:
            name, fallback = with_default.group(1), with_default.group(2)
            value = environ.get(name)
            return fallback if value is None else value
        value = environ.get(expr)
        if value is None:
            raise ConfigError(f'Environment variable "{expr}" is not set but referenced in config')
        return value

    return _ENV_VAR_RE.sub(replacer, obj)


def _strip_jsonc_text(text: str) -> str:
    """Strip BOM, /* */ and // comments & trailing commas so JSON can parse."""
    if text.startswith("\ufeff"):
        text = text.lstrip("\ufeff")
    text = _COMMENT_BLOCK_RE.sub("", text)
    text = _COMMENT_LINE_RE.sub("", text)
    prev = None
    while prev != text:
        prev = text
        text = _TRAILING_COMMA_RE.sub(r"\1", text)
    return text


def _parse_json(raw: str, path: Path) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    try:
        data = json.loads(_strip_jsonc_text(raw))
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in %s: %s at line %d column %d", path, e.msg, e.lineno, e.colno)
        raise ConfigError(f"Invalid JSON in config file: {path}") from e
    logger.warning("Config %s contained comments/trailing-commas; parsed in relaxed JSONC mode.", path)
    return data


def _format_validation_error(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ()))
        parts.append(f"{loc}: {e.get('msg', 'invalid')}")
    return ", ".join(parts)


def _strip_unconfigured_apis(config: Config) -> None:
    # ${VAR:-} fallbacks leave blocks full of empty strings; treat those as absent
    apis = config.apis
    if apis.indexnow and not apis.indexnow.key:
        apis.indexnow = None
    if apis.google and (not apis.google.service_account_path or not apis.google.site_url):
        apis.google = None
    if apis.bing and not apis.bing.api_key:
        apis.bing = None
    if apis.custom_search and (not apis.custom_search.api_key or not apis.custom_search.engine_id):
        apis.custom_search = None


def load_config(path: Optional[Union[str, Path]] = None, *, environ: Optional[MutableMapping[str, str]] = None) -> Config:
    """
    Load and validate the seo-pilot config.

      1) .env.local next to the config fills in unset env vars
      2) strict JSON, then relaxed JSONC
      3) ${VAR} substitution, schema validation
      4) empty API blocks stripped, serviceAccountPath resolved and checked
    """
    environ = os.environ if environ is None else environ
    config_path = Path(path or DEFAULT_CONFIG_FILE).expanduser().resolve()
    config_dir = config_path.parent

    load_env_file(config_dir / ENV_FILE, environ)

    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e

    data = substitute_env_vars(_parse_json(raw, config_path), environ)

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed: {_format_validation_error(e)}") from e

    _strip_unconfigured_apis(config)

    google = config.apis.google
    if google:
        sa_path = (config_dir / Path(google.service_account_path).expanduser()).resolve()
        google.service_account_path = str(sa_path)
        if not sa_path.is_file():
            raise ConfigError(f"Google service account file not found: {sa_path}")

    logger.debug("Loaded config from %s", config_path)
    return config
