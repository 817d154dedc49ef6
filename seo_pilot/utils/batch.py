# seo_pilot/utils/batch.py

import json
import re
from dataclasses import dataclass
from typing import List, Optional

_STATUS_RE = re.compile(r"HTTP/\d(?:\.\d)? (\d{3})")
_BOUNDARY_RE = re.compile(r'boundary="?([^";\s]+)"?', re.I)
_FALLBACK_BOUNDARY_RE = re.compile(r"^--(batch_[\w\-]+)", re.M)


@dataclass
class BatchItem:
    status_code: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def boundary_from_content_type(content_type: Optional[str]) -> Optional[str]:
    """Pull `boundary=` out of a multipart Content-Type (quoted or bare, any param order)."""
    if not content_type:
        return None
    m = _BOUNDARY_RE.search(content_type)
    return m.group(1) if m else None


def _extract_error(part: str) -> Optional[str]:
    start = part.find("{")
    end = part.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        body = json.loads(part[start:end + 1])
    except ValueError:
        return None
    if not isinstance(body, dict) or not body.get("error"):
        return None
    err = body["error"]
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    return json.dumps(err)


def parse_batch_response(body: str, boundary: Optional[str] = None) -> List[BatchItem]:
    """
    Split a multipart/mixed batch response into per-request results.

    Results keep the order of the parts, which Google returns in submission
    order; the caller zips them with its URL list. Parts without an inner
    `HTTP/x.y <code>` status line are skipped rather than reported.
    """
    if not boundary:
        m = _FALLBACK_BOUNDARY_RE.search(body or "")
        if not m:
            return []
        boundary = m.group(1)

    items: List[BatchItem] = []
    for part in (body or "").split(f"--{boundary}"):
        chunk = part.strip()
        if not chunk or chunk == "--":
            continue
        status = _STATUS_RE.search(chunk)
        if not status:
            continue
        items.append(BatchItem(status_code=int(status.group(1)), error=_extract_error(chunk)))
    return items
