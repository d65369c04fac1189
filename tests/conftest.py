"""
Shared test configuration and fixtures for the veille crawler tests.

This module provides fake vendors, an in-memory store, and the settings used
across all test modules.
"""
import os
import sys
import json
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from clients.crawl_client import ScrapeResult, SearchHit
from clients.document_store import InMemoryDocumentStore
from crawler.utils.retry import RetryExecutor
from models.veille_models import Keyword, Site
from utils.config.settings import ScraperSettings


class FakeCrawlClient:
    """Crawl vendor double serving canned map, scrape and search results."""

    def __init__(self, maps: Optional[Dict[str, List[str]]] = None,
                 pages: Optional[Dict[str, Union[ScrapeResult, Exception]]] = None,
                 search_results: Optional[Dict[str, List[SearchHit]]] = None):
        self.maps = maps or {}
        self.pages = pages or {}
        self.search_results = search_results or {}
        self.map_calls: List[str] = []
        self.scrape_calls: List[str] = []
        self.search_calls: List[str] = []
        self.closed = False

    async def map(self, url: str, limit: int = 300) -> List[str]:
        self.map_calls.append(url)
        return list(self.maps.get(url, []))[:limit]

    async def scrape(self, url: str, formats=None, only_main_content: bool = True,
                     wait_for=None, actions=None) -> Optional[ScrapeResult]:
        self.scrape_calls.append(url)
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        return page

    async def search(self, query: str, limit: int = 10) -> List[SearchHit]:
        self.search_calls.append(query)
        for prefix, hits in self.search_results.items():
            if query.startswith(prefix):
                return list(hits)[:limit]
        return []

    async def close(self) -> None:
        self.closed = True


class FakeAIClient:
    """AI vendor double; ``responder`` maps a prompt to the completion text."""

    def __init__(self, responder: Optional[Callable[[str], Optional[str]]] = None):
        self.responder = responder or (lambda prompt: '{"documents": []}')
        self.prompts: List[str] = []
        self.closed = False

    async def complete(self, prompt: str, max_tokens: int = 4096, request_type: str = "classification") -> Optional[str]:
        self.prompts.append(prompt)
        return self.responder(prompt)

    async def close(self) -> None:
        self.closed = True


def page_content_response(title: str, **extra: Any) -> str:
    """AI response holding a single page-content candidate."""
    document = {
        "title": title,
        "summary": f"Résumé de {title}",
        "date": "2024-03-01",
        "category": "regulation",
        "importance": "haute",
        "hs_codes": ["0901"],
        "tariff_changes": [],
        "content": f"Texte complet: {title}",
        "confidence": 0.9,
        "source_type": "page_content",
    }
    document.update(extra)
    return json.dumps({"documents": [document]})


@pytest.fixture
def settings():
    """Settings with every vendor key configured."""
    return ScraperSettings(
        crawl_api_key="fc-test",
        ai_api_key="sk-test",
        crawl_rate_limit_ms=0,
        ai_rate_limit_ms=0,
    )


@pytest.fixture
def sample_site():
    return Site(
        id="site-1",
        name="Douane Test",
        base_url="https://douane.example.gov/actualites",
        categories=["regulation"],
        country_code="MA",
    )


@pytest.fixture
def sample_keyword():
    return Keyword(id="kw-1", text="tarif douanier", category="tarif", country_code="MA")


@pytest.fixture
def store(sample_site, sample_keyword):
    return InMemoryDocumentStore(sites=[sample_site], keywords=[sample_keyword])


@pytest.fixture
def sleeps():
    """Records backoff delays instead of sleeping."""
    return []


@pytest.fixture
def fast_retry(sleeps):
    async def fake_sleep(delay):
        sleeps.append(delay)

    return RetryExecutor(max_retries=3, base_delay_seconds=0.01, sleep=fake_sleep)


@pytest.fixture
def fake_crawl_client():
    return FakeCrawlClient()


@pytest.fixture
def fake_ai_client():
    return FakeAIClient()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every veille-related variable from the environment."""
    for name in list(os.environ):
        if name.startswith("VEILLE_") or name in (
            "FIRECRAWL_API_KEY", "FIRECRAWL_BASE_URL", "SEARCH_API_KEY",
            "OPENAI_API_KEY", "OPENAI_BASE_URL", "LLM_USAGE_FILE",
        ):
            monkeypatch.delenv(name, raising=False)
    return monkeypatch



@pytest.fixture
def make_crawl_client():
    """Factory for crawl vendor doubles."""
    return FakeCrawlClient


@pytest.fixture
def make_ai_client():
    """Factory for AI vendor doubles."""
    return FakeAIClient


@pytest.fixture
def page_content():
    """Builder for single-candidate AI responses."""
    return page_content_response
