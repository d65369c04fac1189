"""
Pipeline settings read from the environment.

Timing constants and the similarity threshold are empirical, so every one of
them can be overridden with a ``VEILLE_*`` variable.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_FIRECRAWL_BASE_URL = "https://api.firecrawl.dev/v1"
DEFAULT_SEARCH_CONTEXT = "douane réglementation customs regulation"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass(frozen=True)
class ScraperSettings:
    """Configuration for one pipeline instance."""
    crawl_api_key: Optional[str] = None
    crawl_base_url: str = DEFAULT_FIRECRAWL_BASE_URL
    search_api_key: Optional[str] = None
    ai_api_key: Optional[str] = None
    ai_base_url: Optional[str] = None
    ai_model: str = "gpt-4o-mini"
    sources_path: Optional[str] = None

    # Parallelism
    max_concurrent_sites: int = 3
    max_concurrent_scrapes: int = 5
    max_concurrent_keywords: int = 5

    # Rate limiting & retries
    crawl_rate_limit_ms: int = 200
    ai_rate_limit_ms: int = 500
    max_retries: int = 3
    retry_base_delay_ms: int = 2000
    retry_max_delay_ms: int = 60000

    # Limits
    max_urls_per_site: int = 300
    max_content_length: int = 15000
    scrape_timeout_ms: int = 30000
    search_results_limit: int = 10
    search_context: str = DEFAULT_SEARCH_CONTEXT

    # Deduplication
    similarity_threshold: float = 0.85
    title_neighbour_limit: int = 10

    def __post_init__(self):
        """Validate configuration."""
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError("Similarity threshold must be between 0 and 1")
        if self.max_urls_per_site > 300:
            raise ValueError("max_urls_per_site cannot exceed 300")
        for name in ("max_concurrent_sites", "max_concurrent_scrapes", "max_concurrent_keywords"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    @property
    def effective_search_api_key(self) -> Optional[str]:
        return self.search_api_key or self.crawl_api_key

    @property
    def scrape_timeout_seconds(self) -> float:
        return self.scrape_timeout_ms / 1000.0

    @classmethod
    def from_env(cls) -> "ScraperSettings":
        """Build settings from environment variables (and ``.env``)."""
        return cls(
            crawl_api_key=os.getenv("FIRECRAWL_API_KEY"),
            crawl_base_url=os.getenv("FIRECRAWL_BASE_URL", DEFAULT_FIRECRAWL_BASE_URL),
            search_api_key=os.getenv("SEARCH_API_KEY"),
            ai_api_key=os.getenv("OPENAI_API_KEY"),
            ai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            ai_model=os.getenv("VEILLE_AI_MODEL", "gpt-4o-mini"),
            sources_path=os.getenv("VEILLE_SOURCES_PATH") or None,
            max_concurrent_sites=_env_int("VEILLE_MAX_CONCURRENT_SITES", 3),
            max_concurrent_scrapes=_env_int("VEILLE_MAX_CONCURRENT_SCRAPES", 5),
            max_concurrent_keywords=_env_int("VEILLE_MAX_CONCURRENT_KEYWORDS", 5),
            crawl_rate_limit_ms=_env_int("VEILLE_CRAWL_RATE_LIMIT_MS", 200),
            ai_rate_limit_ms=_env_int("VEILLE_AI_RATE_LIMIT_MS", 500),
            max_retries=_env_int("VEILLE_MAX_RETRIES", 3),
            retry_base_delay_ms=_env_int("VEILLE_RETRY_BASE_DELAY_MS", 2000),
            retry_max_delay_ms=_env_int("VEILLE_RETRY_MAX_DELAY_MS", 60000),
            max_urls_per_site=_env_int("VEILLE_MAX_URLS_PER_SITE", 300),
            max_content_length=_env_int("VEILLE_MAX_CONTENT_LENGTH", 15000),
            scrape_timeout_ms=_env_int("VEILLE_SCRAPE_TIMEOUT_MS", 30000),
            search_results_limit=_env_int("VEILLE_SEARCH_RESULTS_LIMIT", 10),
            search_context=os.getenv("VEILLE_SEARCH_CONTEXT", DEFAULT_SEARCH_CONTEXT),
            similarity_threshold=_env_float("VEILLE_SIMILARITY_THRESHOLD", 0.85),
        )
