"""
Configuration utilities: settings, environment validation and token tracking.
"""

from .settings import ScraperSettings
from .env_validator import EnvironmentValidator
from .token_tracker import TokenUsageTracker

__all__ = ['ScraperSettings', 'EnvironmentValidator', 'TokenUsageTracker']
