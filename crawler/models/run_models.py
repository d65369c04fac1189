# crawler/models/run_models.py
"""
Per-target results and run-level aggregation for a monitoring cycle.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class UrlOutcome:
    """Counts produced by processing one discovered URL."""
    found: int = 0
    new: int = 0


@dataclass
class SiteResult:
    site_name: str
    found: int = 0
    new: int = 0
    urls_processed: int = 0
    error: Optional[str] = None

    def add(self, outcome: UrlOutcome) -> None:
        self.found += outcome.found
        self.new += outcome.new
        self.urls_processed += 1


@dataclass
class KeywordResult:
    keyword_text: str
    found: int = 0
    new: int = 0
    error: Optional[str] = None


class RunErrorCollector:
    """Collects per-target error messages for one run."""

    def __init__(self):
        self._errors: List[str] = []

    def add(self, target: str, error: Any) -> None:
        self._errors.append(f"{target}: {error}")

    @property
    def errors(self) -> List[str]:
        return list(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)


@dataclass
class RunSummary:
    """Returned to the trigger caller once a cycle completes."""
    sites_scraped: int = 0
    keywords_searched: int = 0
    documents_found: int = 0
    documents_new: int = 0
    duration_seconds: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "sites_scraped": self.sites_scraped,
            "keywords_searched": self.keywords_searched,
            "documents_found": self.documents_found,
            "documents_new": self.documents_new,
            "duration_seconds": self.duration_seconds,
        }
        if self.errors:
            data["errors"] = list(self.errors)
        return data
