"""
Utilities package for the veille crawler.
"""

from .config.settings import ScraperSettings
from .config.env_validator import EnvironmentValidator
from .config.token_tracker import TokenUsageTracker

__all__ = [
    'ScraperSettings',
    'EnvironmentValidator',
    'TokenUsageTracker'
]
