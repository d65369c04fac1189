# crawler/models/__init__.py
"""
Run-level data models for the veille crawler.
"""

from .run_models import (
    UrlOutcome,
    SiteResult,
    KeywordResult,
    RunErrorCollector,
    RunSummary
)

__all__ = [
    'UrlOutcome',
    'SiteResult',
    'KeywordResult',
    'RunErrorCollector',
    'RunSummary'
]
