"""
Environment validator for the veille crawler.

Validates the vendor credentials a monitoring cycle needs before it starts.
"""
from typing import List

from crawler.errors import ConfigurationError
from utils.config.settings import ScraperSettings


class EnvironmentValidator:
    """Validates required vendor configuration."""

    @staticmethod
    def missing_credentials(settings: ScraperSettings) -> List[str]:
        missing = []
        if not settings.crawl_api_key:
            missing.append("FIRECRAWL_API_KEY")
        if not settings.effective_search_api_key:
            missing.append("SEARCH_API_KEY")
        if not settings.ai_api_key:
            missing.append("OPENAI_API_KEY")
        return missing

    @staticmethod
    def require_vendor_credentials(settings: ScraperSettings) -> None:
        """Raise ConfigurationError when any vendor key is missing."""
        missing = EnvironmentValidator.missing_credentials(settings)
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} not configured")
