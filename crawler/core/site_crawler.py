# crawler/core/site_crawler.py
"""
Site crawler for the veille pipeline.

Discovers candidate URLs on a monitored site, scrapes them, and turns their
content into stored documents. A failing URL never stops the rest of the
site; a failing site is reported through its SiteResult.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set
from urllib.parse import urljoin

from loguru import logger

from clients.crawl_client import CrawlClient
from clients.document_store import DocumentStore
from crawler.errors import DuplicateDocumentError, StoreWriteError, TransientVendorError
from crawler.extractors.citation_extractor import extract_regex_citations
from crawler.extractors.content_utils import clean_content_for_ai, file_name_from_url
from crawler.models.run_models import SiteResult, UrlOutcome
from crawler.utils import url_classifier
from crawler.utils.batch import process_batch
from models.veille_models import DocumentCandidate, PersistedDocument, Site
from monitoring.duplicate_detector import DeduplicationEngine
from utils.llm.classifier import ContentClassifier

MIN_CONTENT_LENGTH = 50
PAGE_CONTENT_MAX_CHARS = 15000
DOCUMENT_CONTENT_MAX_CHARS = 10000
DYNAMIC_MAP_LIMIT = 100
DYNAMIC_WAIT_MS = 2000
BINARY_DOCUMENT_CONFIDENCE = 0.6

_PAGE_CATEGORIES = {
    "article": "actualite",
    "announcement": "annonce",
    "table": "tarif",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SiteCrawler:
    """Crawls one monitored site end to end."""

    def __init__(
        self,
        crawl_client: CrawlClient,
        classifier: ContentClassifier,
        dedup: DeduplicationEngine,
        store: DocumentStore,
        max_urls_per_site: int = 300,
        max_concurrent_scrapes: int = 5,
        max_content_length: int = 15000,
    ):
        self.crawl_client = crawl_client
        self.classifier = classifier
        self.dedup = dedup
        self.store = store
        self.max_urls_per_site = max_urls_per_site
        self.max_concurrent_scrapes = max_concurrent_scrapes
        self.max_content_length = max_content_length

    async def _scrape_links(self, url: str, wait_for: Optional[int] = None) -> Optional[List[str]]:
        page = await self.crawl_client.scrape(
            url,
            formats=["markdown", "links"],
            only_main_content=False,
            wait_for=wait_for,
        )
        return page.links if page else None

    async def _map(self, site: Site, url: str, limit: int) -> Optional[List[str]]:
        try:
            return await self.crawl_client.map(url, limit=limit)
        except TransientVendorError as e:
            logger.warning(f"[{site.name}] Map failed: {e}")
            return None

    def _filter_links(self, links: Iterable[str], urls: Set[str]) -> None:
        for link in links:
            if not isinstance(link, str):
                continue
            urls.update(url_classifier.extract_embedded_urls(link))
            if url_classifier.should_exclude(link):
                continue
            if url_classifier.classify(link) != url_classifier.URL_OTHER:
                urls.add(link)
            elif len(urls) < self.max_urls_per_site / 2:
                urls.add(link)

    async def discover_urls(self, site: Site) -> List[str]:
        """Collect the URLs worth scraping for a site, highest priority first."""
        logger.info(f"[{site.name}] Discovering URLs...")
        urls: Set[str] = set()

        embedded = url_classifier.extract_embedded_urls(site.base_url)
        if embedded:
            logger.info(f"[{site.name}] Extracted {len(embedded)} embedded URLs from main URL")
            urls.update(embedded)

        base_url = url_classifier.strip_fragment(site.base_url)
        urls.add(base_url)

        mapped = await self._map(site, base_url, self.max_urls_per_site)
        direct_links = await self._scrape_links(base_url)
        if mapped is None and direct_links is None:
            raise TransientVendorError(f"Site unreachable: map and main page scrape of {base_url} failed",
                                       target=site.name)

        mapped = mapped or []
        direct_links = direct_links or []
        logger.info(f"[{site.name}] Map discovered {len(mapped)} URLs")
        logger.info(f"[{site.name}] Main page has {len(direct_links)} links")

        harvested: List[str] = list(mapped) + list(direct_links)

        for dynamic_url in embedded:
            if dynamic_url == base_url:
                continue
            dynamic_mapped = await self._map(site, dynamic_url, DYNAMIC_MAP_LIMIT) or []
            logger.info(f"[{site.name}] Dynamic page map ({dynamic_url}) discovered {len(dynamic_mapped)} URLs")
            harvested.extend(dynamic_mapped)
            harvested.extend(await self._scrape_links(dynamic_url, wait_for=DYNAMIC_WAIT_MS) or [])

        if site.seed_paths:
            logger.info(f"[{site.name}] Adding {len(site.seed_paths)} known section URLs...")
        for path in site.seed_paths:
            seed_url = urljoin(base_url, path)
            urls.add(seed_url)
            harvested.extend(await self._scrape_links(seed_url, wait_for=DYNAMIC_WAIT_MS) or [])

        self._filter_links(harvested, urls)

        ordered = sorted(urls, key=lambda u: (url_classifier.priority(u), u))
        final_urls = ordered[:self.max_urls_per_site]
        logger.info(f"[{site.name}] Will scrape {len(final_urls)} URLs")
        return final_urls

    async def _insert(self, site: Site, document: PersistedDocument) -> bool:
        try:
            await self.store.insert(document)
            return True
        except DuplicateDocumentError:
            logger.info(f"[{site.name}] Duplicate (store): {document.title[:50]}")
        except StoreWriteError as e:
            logger.error(f"[{site.name}] Insert error: {e}")
        return False

    async def _process_binary(self, site: Site, url: str) -> UrlOutcome:
        if not url_classifier.has_file_extension(url):
            return UrlOutcome()

        logger.info(f"[{site.name}] Binary content detected, creating entry from URL: {url[:60]}")
        file_name = file_name_from_url(url)
        check = await self.dedup.check(url, file_name, site.name)
        if check.is_duplicate:
            return UrlOutcome(found=1, new=0)

        document = PersistedDocument(
            title=file_name,
            source_name=site.name,
            source_url=url,
            category=site.categories[0] if site.categories else "document",
            country_code=site.country_code,
            importance="moyenne",
            summary=f"Fichier téléchargeable: {file_name}",
            content=f"URL: {url}",
            confidence_score=BINARY_DOCUMENT_CONFIDENCE,
            tags=["document", "download"],
        )
        if await self._insert(site, document):
            logger.info(f"[{site.name}] NEW [binary]: {file_name[:50]}")
            return UrlOutcome(found=1, new=1)
        return UrlOutcome(found=1, new=0)

    def build_document(self, site: Site, candidate: DocumentCandidate, page_url: str,
                       page_content: str) -> PersistedDocument:
        """Project a candidate onto the stored document shape."""
        is_page_content = candidate.is_page_content
        source_type = candidate.source_type
        title = candidate.title or file_name_from_url(page_url)

        if is_page_content:
            source_url = page_url
        else:
            source_url = urljoin(page_url, candidate.url) if candidate.url else page_url

        category = candidate.category or (site.categories[0] if site.categories else None)
        if is_page_content and not candidate.category:
            category = _PAGE_CATEGORIES.get(source_type, "page_content")

        if is_page_content:
            content = (candidate.content or page_content)[:PAGE_CONTENT_MAX_CHARS]
        else:
            content = candidate.content[:DOCUMENT_CONTENT_MAX_CHARS] if candidate.content else None

        confidence = candidate.confidence
        if confidence is None:
            confidence = 0.75 if is_page_content else 0.8

        return PersistedDocument(
            title=title,
            source_name=site.name,
            source_url=source_url,
            category=category,
            subcategory=source_type if is_page_content else None,
            country_code=site.country_code,
            publication_date=candidate.date,
            importance=candidate.importance or "moyenne",
            summary=candidate.summary,
            content=content,
            mentioned_hs_codes=candidate.hs_codes,
            detected_tariff_changes=candidate.tariff_changes,
            confidence_score=confidence,
            tags=[source_type, "web_content"] if is_page_content else ["document"],
        )

    async def _process_url(self, site: Site, url: str, index: int, total: int) -> UrlOutcome:
        logger.debug(f"[{site.name}] Scraping {index + 1}/{total}: {url[:80]}")
        url_type = url_classifier.classify(url)

        scraped = await self.crawl_client.scrape(url)
        if scraped is None:
            return UrlOutcome()

        raw_content = scraped.markdown or ""
        if len(raw_content) < MIN_CONTENT_LENGTH and url_type != url_classifier.URL_DOWNLOAD:
            return UrlOutcome()

        if self.classifier.is_binary(raw_content):
            return await self._process_binary(site, url)

        content = clean_content_for_ai(raw_content, self.max_content_length)
        candidates = await self.classifier.analyze_site_content(content, site, url)
        candidates.extend(extract_regex_citations(content, url))
        if not candidates:
            return UrlOutcome()

        found = 0
        new = 0
        for candidate in candidates:
            found += 1
            document = self.build_document(site, candidate, url, content)

            check = await self.dedup.check(document.source_url, document.title, site.name)
            if check.is_duplicate:
                logger.debug(f"[{site.name}] Duplicate ({check.reason}): {document.title[:50]}")
                continue

            if await self._insert(site, document):
                new += 1
                label = f"[{candidate.source_type}]" if candidate.is_page_content else "[doc]"
                logger.info(f"[{site.name}] NEW {label}: {document.title[:55]}")

        return UrlOutcome(found=found, new=new)

    async def process_url(self, site: Site, url: str, index: int = 0, total: int = 1) -> UrlOutcome:
        """Scrape, classify, deduplicate and store one URL; never raises."""
        try:
            return await self._process_url(site, url, index, total)
        except Exception as e:
            logger.error(f"[{site.name}] Error scraping {url}: {e}")
            return UrlOutcome()

    async def crawl_site(self, site: Site) -> SiteResult:
        """Crawl a site and record its scrape status."""
        result = SiteResult(site_name=site.name)
        logger.info(f"========== Starting {site.name} ==========")
        await self.store.update_site(site.id, last_scrape_status="crawling", last_scraped_at=_utcnow())

        try:
            urls = await self.discover_urls(site)
            outcomes = await process_batch(
                urls,
                lambda url, index: self.process_url(site, url, index, len(urls)),
                self.max_concurrent_scrapes,
            )
            for outcome in outcomes:
                result.add(outcome)

            await self.store.update_site(
                site.id,
                last_scrape_status="success",
                last_scraped_at=_utcnow(),
                total_documents_found=result.found,
            )
            logger.info(f"[{site.name}] Completed: {result.new} new / {result.found} found from {len(urls)} URLs")
        except Exception as e:
            result.error = str(e) or type(e).__name__
            logger.error(f"[{site.name}] Error: {result.error}")
            await self.store.update_site(site.id, last_scrape_status="error", last_scraped_at=_utcnow())

        return result
