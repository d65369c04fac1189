"""
Deterministic extraction helpers used alongside the AI classifier.
"""
from .citation_extractor import extract_regex_citations
from .content_utils import clean_content_for_ai, is_binary_content

__all__ = ['extract_regex_citations', 'clean_content_for_ai', 'is_binary_content']
