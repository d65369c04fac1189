# crawler/core/orchestrator.py
"""
Run orchestrator: one monitoring cycle over sites and keywords.

Each site and keyword is isolated, so a failure is recorded in the run log
and the cycle moves on. Only missing vendor credentials abort a run, and they
do so before any run log exists.
"""
import time
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger

from clients.document_store import DocumentStore
from crawler.core.keyword_searcher import KeywordSearcher
from crawler.core.site_crawler import SiteCrawler
from crawler.models.run_models import KeywordResult, RunErrorCollector, RunSummary, SiteResult
from crawler.utils.batch import process_batch
from models.veille_models import Keyword, RunLog, RunStatus, Site
from monitoring.duplicate_detector import DeduplicationEngine
from utils.config.env_validator import EnvironmentValidator
from utils.config.settings import ScraperSettings

MODE_FULL = "full"
MODE_SITES = "sites"
MODE_KEYWORDS = "keywords"
RUN_MODES = (MODE_FULL, MODE_SITES, MODE_KEYWORDS)


class RunOrchestrator:
    """Coordinates a full monitoring cycle."""

    def __init__(
        self,
        settings: ScraperSettings,
        store: DocumentStore,
        site_crawler: SiteCrawler,
        keyword_searcher: KeywordSearcher,
        dedup: Optional[DeduplicationEngine] = None,
    ):
        self.settings = settings
        self.store = store
        self.site_crawler = site_crawler
        self.keyword_searcher = keyword_searcher
        self.dedup = dedup

    async def _run_site(self, site: Site) -> SiteResult:
        try:
            return await self.site_crawler.crawl_site(site)
        except Exception as e:
            logger.error(f"[{site.name}] Error: {e}")
            return SiteResult(site_name=site.name, error=str(e) or type(e).__name__)

    async def _run_keyword(self, keyword: Keyword) -> KeywordResult:
        try:
            return await self.keyword_searcher.process(keyword)
        except Exception as e:
            logger.error(f'[Search] Error for "{keyword.text}": {e}')
            return KeywordResult(keyword_text=keyword.text, error=str(e) or type(e).__name__)

    async def run(self, mode: str = MODE_FULL, site_id: Optional[str] = None,
                  keyword_id: Optional[str] = None) -> RunSummary:
        """Run one monitoring cycle.

        Args:
            mode: ``full``, ``sites`` or ``keywords``
            site_id: Restrict the site step to this site
            keyword_id: Restrict the keyword step to this keyword

        Returns:
            RunSummary with aggregated counts and per-target errors

        Raises:
            ConfigurationError: A vendor credential is missing (no run log is created)
            ValueError: Unknown mode
        """
        mode = mode or MODE_FULL
        if mode not in RUN_MODES:
            raise ValueError(f"Unknown mode '{mode}', expected one of {', '.join(RUN_MODES)}")
        EnvironmentValidator.require_vendor_credentials(self.settings)

        run_log = await self.store.create_run_log(RunLog())
        started = time.monotonic()
        logger.info("====== VEILLE SCRAPER START ======")

        try:
            site_results: List[SiteResult] = []
            keyword_results: List[KeywordResult] = []

            if mode in (MODE_FULL, MODE_SITES):
                sites = await self.store.list_active_sites(site_id)
                logger.info(f"Mode: {mode}, Sites: {len(sites)}")
                site_results = await process_batch(
                    sites, lambda site, _: self._run_site(site), self.settings.max_concurrent_sites
                )

            if mode in (MODE_FULL, MODE_KEYWORDS):
                keywords = await self.store.list_active_keywords(keyword_id)
                logger.info(f"Mode: {mode}, Keywords: {len(keywords)}")
                keyword_results = await process_batch(
                    keywords, lambda keyword, _: self._run_keyword(keyword), self.settings.max_concurrent_keywords
                )

            summary = self._summarize(site_results, keyword_results, started)
        except Exception as e:
            logger.error(f"Veille cycle failed: {e}")
            await self._finalize(run_log, RunStatus.ERROR, started, errors=[str(e) or type(e).__name__])
            raise

        status = RunStatus.COMPLETED_WITH_ERRORS if summary.errors else RunStatus.COMPLETED
        await self._finalize(run_log, status, started, summary=summary)

        logger.info("====== VEILLE COMPLETE ======")
        logger.info(
            f"Sites: {summary.sites_scraped}, Keywords: {summary.keywords_searched}, "
            f"New docs: {summary.documents_new}, Duration: {summary.duration_seconds}s"
        )
        if self.dedup is not None:
            self.dedup.log_statistics()
        return summary

    @staticmethod
    def _summarize(site_results: List[SiteResult], keyword_results: List[KeywordResult],
                   started: float) -> RunSummary:
        collector = RunErrorCollector()
        for result in site_results:
            if result.error:
                collector.add(result.site_name, result.error)
        for result in keyword_results:
            if result.error:
                collector.add(result.keyword_text, result.error)

        results = list(site_results) + list(keyword_results)
        return RunSummary(
            sites_scraped=len(site_results),
            keywords_searched=len(keyword_results),
            documents_found=sum(result.found for result in results),
            documents_new=sum(result.new for result in results),
            duration_seconds=round(time.monotonic() - started),
            errors=collector.errors,
        )

    async def _finalize(self, run_log: RunLog, status: str, started: float,
                        summary: Optional[RunSummary] = None, errors: Optional[List[str]] = None) -> None:
        ended_at = datetime.now(timezone.utc)
        update = {
            "status": status,
            "cycle_ended_at": ended_at,
            "duration_seconds": round(time.monotonic() - started),
            "errors": errors if errors is not None else (summary.errors if summary else []),
        }
        if summary is not None:
            update.update(
                sites_scraped=summary.sites_scraped,
                keywords_searched=summary.keywords_searched,
                documents_found=summary.documents_found,
                documents_new=summary.documents_new,
                duration_seconds=summary.duration_seconds,
            )
        await self.store.finalize_run_log(run_log.model_copy(update=update))
        await self.store.update_config_last_run(ended_at)
