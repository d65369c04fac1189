"""
Duplicate detection for the veille crawler.
"""
from monitoring.duplicate_detector import DeduplicationEngine, DuplicateCheck, normalize_url, similarity

__all__ = ['DeduplicationEngine', 'DuplicateCheck', 'normalize_url', 'similarity']
