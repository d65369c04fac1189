# crawler/factories/pipeline_factory.py
"""
Factory wiring the veille pipeline from settings.

Every pipeline gets its own rate limiters, retry executor and circuit
breakers, so two pipelines never share pacing state.
"""
import os
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from clients.ai_client import AIClient
from clients.crawl_client import CrawlClient
from clients.document_store import DocumentStore, InMemoryDocumentStore
from crawler.core.keyword_searcher import KeywordSearcher
from crawler.core.orchestrator import MODE_FULL, RunOrchestrator
from crawler.core.site_crawler import SiteCrawler
from crawler.models.run_models import RunSummary
from crawler.utils.circuit_breaker import CircuitBreaker
from crawler.utils.rate_limiter import RateLimiter
from crawler.utils.retry import RetryExecutor
from monitoring.duplicate_detector import DeduplicationEngine
from utils.config.settings import ScraperSettings
from utils.llm.classifier import ContentClassifier

DEFAULT_SOURCES_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "config",
    "sources.yaml",
)


@dataclass
class VeillePipeline:
    orchestrator: RunOrchestrator
    crawl_client: CrawlClient
    ai_client: AIClient
    store: DocumentStore

    async def run(self, mode: str = MODE_FULL, site_id: Optional[str] = None,
                  keyword_id: Optional[str] = None) -> RunSummary:
        try:
            return await self.orchestrator.run(mode=mode, site_id=site_id, keyword_id=keyword_id)
        finally:
            await self.crawl_client.close()
            await self.ai_client.close()


def load_store(settings: ScraperSettings) -> DocumentStore:
    """In-memory store seeded from the configured sources file, when there is one."""
    path = settings.sources_path or DEFAULT_SOURCES_PATH
    if os.path.exists(path):
        return InMemoryDocumentStore.from_yaml(path)
    logger.warning(f"No sources file at {path}; starting with an empty store")
    return InMemoryDocumentStore()


def create_pipeline(settings: ScraperSettings, store: Optional[DocumentStore] = None,
                    crawl_client: Optional[CrawlClient] = None,
                    ai_client: Optional[AIClient] = None) -> VeillePipeline:
    """Build a ready-to-run pipeline; vendor clients may be injected."""
    store = store or load_store(settings)
    retry = RetryExecutor(
        max_retries=settings.max_retries,
        base_delay_seconds=settings.retry_base_delay_ms / 1000.0,
        max_delay_seconds=settings.retry_max_delay_ms / 1000.0,
    )

    if crawl_client is None:
        crawl_client = CrawlClient(
            api_key=settings.crawl_api_key or "",
            rate_limiter=RateLimiter.from_milliseconds(settings.crawl_rate_limit_ms),
            retry=retry,
            base_url=settings.crawl_base_url,
            scrape_timeout_seconds=settings.scrape_timeout_seconds,
            search_api_key=settings.effective_search_api_key,
            circuit_breaker=CircuitBreaker("crawl_vendor"),
        )

    if ai_client is None:
        ai_client = AIClient(
            api_key=settings.ai_api_key or "",
            rate_limiter=RateLimiter.from_milliseconds(settings.ai_rate_limit_ms),
            retry=retry,
            model=settings.ai_model,
            base_url=settings.ai_base_url,
            circuit_breaker=CircuitBreaker("ai_vendor"),
        )

    classifier = ContentClassifier(ai_client, max_content_length=settings.max_content_length)
    dedup = DeduplicationEngine(
        store,
        similarity_threshold=settings.similarity_threshold,
        neighbour_limit=settings.title_neighbour_limit,
    )
    site_crawler = SiteCrawler(
        crawl_client,
        classifier,
        dedup,
        store,
        max_urls_per_site=settings.max_urls_per_site,
        max_concurrent_scrapes=settings.max_concurrent_scrapes,
        max_content_length=settings.max_content_length,
    )
    keyword_searcher = KeywordSearcher(
        crawl_client,
        classifier,
        dedup,
        store,
        results_limit=settings.search_results_limit,
        search_context=settings.search_context,
    )
    orchestrator = RunOrchestrator(settings, store, site_crawler, keyword_searcher, dedup=dedup)
    return VeillePipeline(orchestrator=orchestrator, crawl_client=crawl_client, ai_client=ai_client, store=store)
