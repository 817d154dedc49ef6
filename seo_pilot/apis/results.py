# seo_pilot/apis/results.py

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class SubmitResult:
    """Outcome of one submit-style call; `url_count` counts successes only."""
    success: bool
    url_count: int
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "urlCount": self.url_count, "errors": list(self.errors)}
