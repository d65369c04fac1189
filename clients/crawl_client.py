"""
Client for the crawling/search vendor (Firecrawl-compatible v1 REST API).

Every call goes through the injected rate limiter and retry executor. When
retries are exhausted, or the circuit is open, ``scrape`` yields ``None`` while
``map`` and ``search`` raise TransientVendorError so the caller can record the
failure against its site or keyword.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from crawler.errors import RateLimitError, TransientVendorError
from crawler.utils.circuit_breaker import CircuitBreaker
from crawler.utils.rate_limiter import RateLimiter
from crawler.utils.retry import RetryExecutor


@dataclass
class ScrapeResult:
    markdown: str = ""
    links: List[str] = field(default_factory=list)
    html: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ScrapeResult":
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        links = [link for link in (data.get("links") or []) if isinstance(link, str)]
        return cls(
            markdown=data.get("markdown") or "",
            links=links,
            html=data.get("html"),
            metadata=data.get("metadata"),
        )


@dataclass
class SearchHit:
    url: str
    title: str = ""
    description: Optional[str] = None
    markdown: Optional[str] = None


class CrawlClient:
    """Site mapping, page scraping and keyword search against the crawl vendor."""

    def __init__(
        self,
        api_key: str,
        rate_limiter: RateLimiter,
        retry: RetryExecutor,
        base_url: str = "https://api.firecrawl.dev/v1",
        scrape_timeout_seconds: float = 30.0,
        search_api_key: Optional[str] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.search_api_key = search_api_key or api_key
        self.rate_limiter = rate_limiter
        self.retry = retry
        self.base_url = base_url.rstrip("/")
        self.scrape_timeout_seconds = scrape_timeout_seconds
        self.circuit_breaker = circuit_breaker
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "CrawlClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=120))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def _post(self, endpoint: str, payload: Dict[str, Any], api_key: Optional[str] = None) -> Dict[str, Any]:
        """POST one request to the vendor; raises on any non-2xx status."""
        headers = {
            "Authorization": f"Bearer {api_key or self.api_key}",
            "Content-Type": "application/json",
        }
        session = self._get_session()
        async with session.post(f"{self.base_url}/{endpoint}", json=payload, headers=headers) as response:
            if response.status == 429:
                raise RateLimitError(f"{endpoint} rate limited (429)")
            if response.status >= 400:
                raise TransientVendorError(f"{endpoint.capitalize()} failed: {response.status}",
                                           status_code=response.status)
            return await response.json()

    async def _guarded(self, operation, context: str, raise_on_failure: bool = False):
        """Run through the circuit breaker, rate limiter and retry executor.

        Returns None on failure, or raises TransientVendorError when
        ``raise_on_failure`` is set.
        """
        if self.circuit_breaker and not self.circuit_breaker.can_call():
            logger.warning(f"{context} skipped: crawl vendor circuit open")
            if raise_on_failure:
                raise TransientVendorError(f"{context} skipped: crawl vendor circuit open")
            return None

        async def attempt():
            await self.rate_limiter.wait()
            return await operation()

        result = await self.retry.run(attempt, context=context)
        if self.circuit_breaker:
            if result is None:
                self.circuit_breaker.record_failure()
            else:
                self.circuit_breaker.record_success()
        if result is None and raise_on_failure:
            raise TransientVendorError(f"{context} failed after retries")
        return result

    async def map(self, url: str, limit: int = 300) -> List[str]:
        """Map a site's URL inventory, bounded to ``limit`` URLs.

        Raises:
            TransientVendorError: The vendor still failed after all retries
        """
        limit = max(1, min(limit, 300))
        result = await self._guarded(
            lambda: self._post("map", {"url": url, "limit": limit, "includeSubdomains": False}),
            f"Map {url}",
            raise_on_failure=True,
        )
        if not result:
            return []

        links = result.get("links")
        if links is None and isinstance(result.get("data"), dict):
            links = result["data"].get("links")
        return [link for link in (links or []) if isinstance(link, str)][:limit]

    async def scrape(
        self,
        url: str,
        formats: Optional[List[str]] = None,
        only_main_content: bool = True,
        wait_for: Optional[int] = None,
        actions: Optional[List[Dict[str, Any]]] = None,
    ) -> Optional[ScrapeResult]:
        """Scrape one page; each attempt is cancelled after the scrape timeout."""
        body: Dict[str, Any] = {
            "url": url,
            "formats": formats or ["markdown", "links"],
            "onlyMainContent": only_main_content,
        }
        if wait_for:
            body["waitFor"] = wait_for
        if actions:
            body["actions"] = actions

        async def scrape_once():
            payload = await asyncio.wait_for(self._post("scrape", body), timeout=self.scrape_timeout_seconds)
            return ScrapeResult.from_payload(payload or {})

        return await self._guarded(scrape_once, f"Scrape {url}")

    async def search(self, query: str, limit: int = 10) -> List[SearchHit]:
        """Run a keyword query against the search vendor; raises like ``map``."""
        result = await self._guarded(
            lambda: self._post(
                "search",
                {"query": query, "limit": limit, "scrapeOptions": {"formats": ["markdown"]}},
                api_key=self.search_api_key,
            ),
            f'Search "{query}"',
            raise_on_failure=True,
        )
        if not result:
            return []

        hits = []
        for item in result.get("data") or []:
            if not isinstance(item, dict) or not item.get("url"):
                continue
            hits.append(SearchHit(
                url=item["url"],
                title=item.get("title") or item["url"],
                description=item.get("description"),
                markdown=item.get("markdown"),
            ))
        return hits
