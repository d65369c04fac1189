"""
LLM utilities for content classification.
"""

from .classifier import ContentClassifier
from .response_parser import Candidates, Empty, parse_response

__all__ = ['ContentClassifier', 'Candidates', 'Empty', 'parse_response']
