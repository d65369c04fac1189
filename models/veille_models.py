"""
Domain models for the veille (regulatory monitoring) pipeline.

Sites and keywords are configured externally, candidates are transient
extraction output, and persisted documents and run logs are what the
document store keeps.
"""
from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


PAGE_CONTENT_TYPES = ("page_content", "article", "announcement", "table")


def _clamp_unit(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return max(0.0, min(1.0, float(value)))
    except (TypeError, ValueError):
        return None


def _as_code_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(code) for code in value if code]


def _as_list(value: Any) -> List[Any]:
    if not value:
        return []
    if isinstance(value, list):
        return value
    return [value]


class Site(BaseModel):
    """A monitored government or customs website."""

    id: str = Field(default_factory=_new_id)
    name: str
    base_url: str
    scrape_type: str = "map"
    selector: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    country_code: Optional[str] = None
    is_active: bool = True
    seed_paths: List[str] = Field(default_factory=list)
    last_scraped_at: Optional[datetime] = None
    last_scrape_status: Optional[str] = None
    total_documents_found: int = 0


class Keyword(BaseModel):
    """A search term submitted to the search vendor on every cycle."""

    id: str = Field(default_factory=_new_id)
    text: str
    category: Optional[str] = None
    country_code: Optional[str] = None
    is_active: bool = True
    total_searches: int = 0
    total_results: int = 0
    last_searched_at: Optional[datetime] = None


class DocumentCandidate(BaseModel):
    """Transient extraction output, checked for duplicates before persisting."""

    title: str = ""
    summary: Optional[str] = None
    date: Optional[str] = None
    category: Optional[str] = None
    importance: Optional[str] = None
    hs_codes: List[str] = Field(default_factory=list)
    tariff_changes: List[Any] = Field(default_factory=list)
    content: Optional[str] = None
    url: Optional[str] = None
    confidence: Optional[float] = None
    source_type: str = "document"

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> Optional[float]:
        return _clamp_unit(value)

    @field_validator("hs_codes", mode="before")
    @classmethod
    def _coerce_hs_codes(cls, value: Any) -> List[str]:
        return _as_code_list(value)

    @field_validator("tariff_changes", mode="before")
    @classmethod
    def _coerce_tariff_changes(cls, value: Any) -> List[Any]:
        return _as_list(value)

    @field_validator("source_type", mode="before")
    @classmethod
    def _default_source_type(cls, value: Any) -> str:
        return value or "document"

    @property
    def is_page_content(self) -> bool:
        return self.source_type in PAGE_CONTENT_TYPES


class DocumentAnalysis(BaseModel):
    """Single-document analysis returned for search results."""

    summary: Optional[str] = None
    importance: Optional[str] = None
    hs_codes: List[str] = Field(default_factory=list)
    tariff_changes: List[Any] = Field(default_factory=list)
    confidence: Optional[float] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> Optional[float]:
        return _clamp_unit(value)

    @field_validator("hs_codes", mode="before")
    @classmethod
    def _coerce_hs_codes(cls, value: Any) -> List[str]:
        return _as_code_list(value)

    @field_validator("tariff_changes", mode="before")
    @classmethod
    def _coerce_tariff_changes(cls, value: Any) -> List[Any]:
        return _as_list(value)


class PersistedDocument(BaseModel):
    """A stored regulatory document."""

    id: str = Field(default_factory=_new_id)
    title: str
    source_name: str
    source_url: str
    category: Optional[str] = None
    subcategory: Optional[str] = None
    country_code: Optional[str] = None
    publication_date: Optional[str] = None
    importance: str = "moyenne"
    summary: Optional[str] = None
    content: Optional[str] = None
    mentioned_hs_codes: List[str] = Field(default_factory=list)
    detected_tariff_changes: List[Any] = Field(default_factory=list)
    confidence_score: Optional[float] = None
    collected_by: str = "automatic"
    search_keyword: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)


class RunStatus:
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    ERROR = "error"


class RunLog(BaseModel):
    """Audit row summarizing exactly one orchestrator invocation."""

    id: str = Field(default_factory=_new_id)
    cycle_started_at: datetime = Field(default_factory=_utcnow)
    cycle_ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    status: str = RunStatus.RUNNING
    sites_scraped: int = 0
    keywords_searched: int = 0
    documents_found: int = 0
    documents_new: int = 0
    errors: List[str] = Field(default_factory=list)


class VeilleConfig(BaseModel):
    """Singleton configuration row."""

    last_run_at: Optional[datetime] = None
