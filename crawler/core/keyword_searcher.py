# crawler/core/keyword_searcher.py
"""
Keyword search step of a monitoring cycle.
"""
from datetime import datetime, timezone
from urllib.parse import urlparse

from loguru import logger

from clients.crawl_client import CrawlClient, SearchHit
from clients.document_store import DocumentStore
from crawler.errors import DuplicateDocumentError, StoreWriteError, TransientVendorError
from crawler.models.run_models import KeywordResult
from models.veille_models import Keyword, PersistedDocument
from monitoring.duplicate_detector import DeduplicationEngine
from utils.config.settings import DEFAULT_SEARCH_CONTEXT
from utils.llm.classifier import ContentClassifier

SEARCH_CONTENT_MAX_CHARS = 10000
SEARCH_DEFAULT_CONFIDENCE = 0.7


class KeywordSearcher:
    """Runs one keyword through search, analysis and storage."""

    def __init__(
        self,
        crawl_client: CrawlClient,
        classifier: ContentClassifier,
        dedup: DeduplicationEngine,
        store: DocumentStore,
        results_limit: int = 10,
        search_context: str = DEFAULT_SEARCH_CONTEXT,
    ):
        self.crawl_client = crawl_client
        self.classifier = classifier
        self.dedup = dedup
        self.store = store
        self.results_limit = results_limit
        self.search_context = search_context

    def build_query(self, keyword: Keyword) -> str:
        if not self.search_context:
            return keyword.text
        return f"{keyword.text} {self.search_context}"

    @staticmethod
    def source_name_for(url: str) -> str:
        return urlparse(url).hostname or "Search"

    async def process(self, keyword: Keyword) -> KeywordResult:
        """Search a keyword and store its new results.

        Keyword counters are updated after every search attempt, whatever it
        returned. A search that still fails after retries is counted with zero
        results and its TransientVendorError re-raised; classifier errors are
        not caught here either.
        """
        result = KeywordResult(keyword_text=keyword.text)
        logger.info(f'[Search] "{keyword.text}"')

        try:
            hits = await self.crawl_client.search(self.build_query(keyword), limit=self.results_limit)
        except TransientVendorError:
            await self.store.increment_keyword_counters(keyword.id, 0, datetime.now(timezone.utc))
            raise
        logger.info(f'[Search] "{keyword.text}" - {len(hits)} results')

        await self.store.increment_keyword_counters(keyword.id, len(hits), datetime.now(timezone.utc))

        for hit in hits:
            title = hit.title or hit.url
            source_name = self.source_name_for(hit.url)

            check = await self.dedup.check(hit.url, title, source_name)
            if check.is_duplicate:
                continue

            result.found += 1
            if not hit.markdown:
                continue

            if await self._store_hit(keyword, hit, title, source_name):
                result.new += 1
                logger.info(f"[Search] NEW: {title[:50]}")

        return result

    async def _store_hit(self, keyword: Keyword, hit: SearchHit, title: str, source_name: str) -> bool:
        analysis = await self.classifier.analyze_one(hit.markdown, title)

        confidence = analysis.confidence if analysis and analysis.confidence is not None else SEARCH_DEFAULT_CONFIDENCE
        document = PersistedDocument(
            title=title,
            source_name=source_name,
            source_url=hit.url,
            category=keyword.category,
            country_code=keyword.country_code,
            search_keyword=keyword.text,
            importance=(analysis.importance if analysis else None) or "moyenne",
            summary=(analysis.summary if analysis else None) or hit.description,
            content=hit.markdown[:SEARCH_CONTENT_MAX_CHARS],
            mentioned_hs_codes=analysis.hs_codes if analysis else [],
            detected_tariff_changes=analysis.tariff_changes if analysis else [],
            confidence_score=confidence,
            collected_by=keyword.id,
        )

        try:
            await self.store.insert(document)
            return True
        except DuplicateDocumentError:
            logger.info(f"[Search] Duplicate (store): {title[:50]}")
        except StoreWriteError as e:
            logger.error(f"[Search] Insert error for {hit.url}: {e}")
        return False
