# seo_pilot/history.py

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".seo-pilot"

INDEX_HISTORY = "index-history.json"
INSPECT_HISTORY = "inspect-history.json"
RANK_HISTORY = "rank-history.json"
DISCOVER_HISTORY = "discover-history.json"
AUDIT_HISTORY = "audit-history.json"

HistoryEntry = Dict[str, Any]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_state_dir(base: Optional[Union[str, Path]] = None) -> Path:
    return Path(base or Path.cwd()) / STATE_DIR_NAME


def _history_path(filename: str, base: Optional[Union[str, Path]] = None) -> Path:
    state_dir = get_state_dir(base)
    state_dir.mkdir(parents=True, exist_ok=True)
    return state_dir / filename


def read_history(filename: str, *, base: Optional[Union[str, Path]] = None) -> List[HistoryEntry]:
    """Entries of one history file; an absent file reads as []."""
    path = _history_path(filename, base)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    if not isinstance(data, list):
        raise ValueError(f"History file {path} does not contain a JSON array")
    return data


def write_history(filename: str, entries: List[HistoryEntry], *, base: Optional[Union[str, Path]] = None) -> Path:
    path = _history_path(filename, base)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(entries, f, indent=2, ensure_ascii=False)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)
    return path


def append_history(
    filename: str,
    entries: Union[HistoryEntry, List[HistoryEntry]],
    *,
    base: Optional[Union[str, Path]] = None,
) -> Path:
    """Append one entry or a list of entries, stamping `timestamp` where missing."""
    batch = entries if isinstance(entries, list) else [entries]
    stamped = [e if "timestamp" in e else {"timestamp": now_iso(), **e} for e in batch]
    path = write_history(filename, read_history(filename, base=base) + stamped, base=base)
    logger.debug("Appended %d entries to %s", len(stamped), path)
    return path
