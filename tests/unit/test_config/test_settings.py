"""
Unit tests for the configuration layer: settings, credential validation and
token budget tracking.
"""
import json

import pytest

from crawler.errors import ConfigurationError
from utils.config.env_validator import EnvironmentValidator
from utils.config.settings import DEFAULT_SEARCH_CONTEXT, ScraperSettings
from utils.config.token_tracker import TokenUsageTracker


class TestScraperSettings:

    @pytest.mark.unit
    def test_defaults_from_empty_environment(self, clean_env):
        settings = ScraperSettings.from_env()

        assert settings.crawl_api_key is None
        assert settings.max_concurrent_sites == 3
        assert settings.max_concurrent_scrapes == 5
        assert settings.crawl_rate_limit_ms == 200
        assert settings.ai_rate_limit_ms == 500
        assert settings.max_urls_per_site == 300
        assert settings.similarity_threshold == 0.85
        assert settings.search_context == DEFAULT_SEARCH_CONTEXT
        assert settings.scrape_timeout_seconds == 30.0

    @pytest.mark.unit
    def test_environment_overrides(self, clean_env):
        clean_env.setenv("FIRECRAWL_API_KEY", "fc-env")
        clean_env.setenv("OPENAI_API_KEY", "sk-env")
        clean_env.setenv("VEILLE_MAX_CONCURRENT_SITES", "2")
        clean_env.setenv("VEILLE_SIMILARITY_THRESHOLD", "0.9")
        clean_env.setenv("VEILLE_CRAWL_RATE_LIMIT_MS", "")

        settings = ScraperSettings.from_env()

        assert settings.crawl_api_key == "fc-env"
        assert settings.ai_api_key == "sk-env"
        assert settings.max_concurrent_sites == 2
        assert settings.similarity_threshold == 0.9
        assert settings.crawl_rate_limit_ms == 200

    @pytest.mark.unit
    def test_search_key_falls_back_to_crawl_key(self):
        assert ScraperSettings(crawl_api_key="fc").effective_search_api_key == "fc"
        assert ScraperSettings(crawl_api_key="fc", search_api_key="s").effective_search_api_key == "s"

    @pytest.mark.unit
    @pytest.mark.parametrize("kwargs", [
        {"similarity_threshold": 1.5},
        {"max_urls_per_site": 301},
        {"max_concurrent_scrapes": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ScraperSettings(**kwargs)


class TestEnvironmentValidator:

    @pytest.mark.unit
    def test_all_credentials_present(self, settings):
        EnvironmentValidator.require_vendor_credentials(settings)

        assert EnvironmentValidator.missing_credentials(settings) == []

    @pytest.mark.unit
    def test_missing_credentials_named(self):
        with pytest.raises(ConfigurationError) as exc_info:
            EnvironmentValidator.require_vendor_credentials(ScraperSettings())

        assert str(exc_info.value) == "FIRECRAWL_API_KEY, SEARCH_API_KEY, OPENAI_API_KEY not configured"

    @pytest.mark.unit
    def test_crawl_key_covers_search_credential(self):
        settings = ScraperSettings(crawl_api_key="fc-test", ai_api_key="sk-test")

        assert EnvironmentValidator.missing_credentials(settings) == []
        assert settings.effective_search_api_key == "fc-test"


class TestTokenUsageTracker:

    @pytest.mark.unit
    def test_records_usage_per_model_and_type(self, clean_env):
        tracker = TokenUsageTracker()

        tracker.record_usage("gpt-4o-mini", 300, "site_analysis")
        tracker.record_usage("gpt-4o-mini", 100, "document_analysis")

        stats = tracker.get_usage_stats()
        assert stats["daily_usage"]["tokens"] == 400
        assert stats["total_usage"]["requests"] == 2
        assert stats["models"]["gpt-4o-mini"]["types"]["site_analysis"]["tokens"] == 300

    @pytest.mark.unit
    def test_budget(self, clean_env):
        clean_env.setenv("LLM_DAILY_TOKEN_LIMIT", "1000")
        tracker = TokenUsageTracker()

        assert tracker.can_make_request(900)
        tracker.record_usage("gpt-4o-mini", 500)
        assert not tracker.can_make_request(600)

    @pytest.mark.unit
    def test_tracking_disabled(self, clean_env):
        clean_env.setenv("LLM_TRACK_USAGE", "false")
        tracker = TokenUsageTracker()

        tracker.record_usage("gpt-4o-mini", 10 ** 9)

        assert tracker.can_make_request(10 ** 9)
        assert tracker.get_usage_stats()["tracking_enabled"] is False

    @pytest.mark.unit
    def test_persists_and_resets_stale_counters(self, clean_env, tmp_path):
        path = tmp_path / "usage.json"
        path.write_text(json.dumps({
            "daily_tokens": 5000,
            "monthly_tokens": 7000,
            "total_tokens": 9000,
            "daily_date": "2000-01-01",
            "monthly_date": "2000-01",
            "request_count": 3,
            "models": {},
        }))

        tracker = TokenUsageTracker(storage_path=str(path))

        assert tracker.usage_data["daily_tokens"] == 0
        assert tracker.usage_data["monthly_tokens"] == 0
        assert tracker.usage_data["total_tokens"] == 9000

        tracker.record_usage("gpt-4o-mini", 25)
        assert json.loads(path.read_text())["total_tokens"] == 9025
