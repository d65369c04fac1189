"""
Unit tests for crawler.core.orchestrator.

Site crawling and keyword search are mocked; these tests cover run modes,
per-target isolation and run log bookkeeping.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from crawler.core.orchestrator import RunOrchestrator
from crawler.errors import ConfigurationError
from crawler.models.run_models import KeywordResult, SiteResult
from models.veille_models import RunStatus, Site
from utils.config.settings import ScraperSettings


@pytest.fixture
def site_crawler():
    crawler = MagicMock()
    crawler.crawl_site = AsyncMock(
        side_effect=lambda site: SiteResult(site_name=site.name, found=3, new=2, urls_processed=3)
    )
    return crawler


@pytest.fixture
def keyword_searcher():
    searcher = MagicMock()
    searcher.process = AsyncMock(
        side_effect=lambda keyword: KeywordResult(keyword_text=keyword.text, found=1, new=1)
    )
    return searcher


@pytest.fixture
def orchestrator(settings, store, site_crawler, keyword_searcher):
    return RunOrchestrator(settings, store, site_crawler, keyword_searcher)


def only_run_log(store):
    assert len(store.run_logs) == 1
    return next(iter(store.run_logs.values()))


class TestRunOrchestrator:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_full_run_aggregates_results(self, orchestrator, store):
        summary = await orchestrator.run()

        assert summary.sites_scraped == 1
        assert summary.keywords_searched == 1
        assert summary.documents_found == 4
        assert summary.documents_new == 3
        assert summary.errors == []

        run_log = only_run_log(store)
        assert run_log.status == RunStatus.COMPLETED
        assert run_log.documents_new == 3
        assert run_log.cycle_ended_at is not None
        assert store.config.last_run_at == run_log.cycle_ended_at

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_site_failure_is_isolated(self, orchestrator, store, site_crawler):
        site_crawler.crawl_site.side_effect = RuntimeError("map unavailable")

        summary = await orchestrator.run()

        assert summary.errors == ["Douane Test: map unavailable"]
        assert summary.sites_scraped == 1
        assert summary.documents_new == 1
        assert only_run_log(store).status == RunStatus.COMPLETED_WITH_ERRORS

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_site_result_error_is_reported(self, orchestrator, store, site_crawler):
        site_crawler.crawl_site.side_effect = lambda site: SiteResult(site_name=site.name, error="timeout")

        summary = await orchestrator.run(mode="sites")

        assert summary.errors == ["Douane Test: timeout"]
        assert summary.to_dict()["errors"] == ["Douane Test: timeout"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sites_mode_skips_keywords(self, orchestrator, keyword_searcher):
        summary = await orchestrator.run(mode="sites")

        assert summary.keywords_searched == 0
        keyword_searcher.process.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_keywords_mode_skips_sites(self, orchestrator, site_crawler):
        summary = await orchestrator.run(mode="keywords")

        assert summary.sites_scraped == 0
        assert summary.keywords_searched == 1
        site_crawler.crawl_site.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_site_id_restricts_run(self, orchestrator, store, site_crawler):
        store.sites["site-2"] = Site(id="site-2", name="Autre douane", base_url="https://autre.example.gov")

        await orchestrator.run(mode="sites", site_id="site-2")

        site_crawler.crawl_site.assert_awaited_once()
        assert site_crawler.crawl_site.await_args.args[0].id == "site-2"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_inactive_sites_are_skipped(self, orchestrator, store, site_crawler):
        store.sites["site-1"] = store.sites["site-1"].model_copy(update={"is_active": False})

        summary = await orchestrator.run(mode="sites")

        assert summary.sites_scraped == 0
        site_crawler.crawl_site.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_mode_rejected(self, orchestrator, store):
        with pytest.raises(ValueError, match="Unknown mode"):
            await orchestrator.run(mode="everything")

        assert store.run_logs == {}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_credentials_abort_before_run_log(self, store, site_crawler, keyword_searcher):
        orchestrator = RunOrchestrator(ScraperSettings(crawl_api_key="fc-test"), store,
                                       site_crawler, keyword_searcher)

        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY not configured"):
            await orchestrator.run()

        assert store.run_logs == {}
        site_crawler.crawl_site.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_failure_finalizes_run_log(self, orchestrator, store):
        store.list_active_sites = AsyncMock(side_effect=RuntimeError("database unavailable"))

        with pytest.raises(RuntimeError):
            await orchestrator.run()

        run_log = only_run_log(store)
        assert run_log.status == RunStatus.ERROR
        assert run_log.errors == ["database unavailable"]
        assert store.config.last_run_at is not None
