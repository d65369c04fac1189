# crawler/factories/__init__.py
"""
Factory package for the veille crawler.
Builds a monitoring pipeline from settings.
"""

from .pipeline_factory import VeillePipeline, create_pipeline, load_store

__all__ = [
    'VeillePipeline',
    'create_pipeline',
    'load_store'
]
