"""
Document store used by the veille pipeline.

The production store is an external database; ``DocumentStore`` is the
contract the pipeline relies on. ``InMemoryDocumentStore`` implements it for
local runs and tests and enforces the same uniqueness rule on normalized
source URLs that the real store must enforce.
"""
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger

from crawler.errors import ConfigurationError, DuplicateDocumentError
from models.veille_models import Keyword, PersistedDocument, RunLog, Site, VeilleConfig
from monitoring.duplicate_detector import normalize_url


class DocumentStore(ABC):
    """Persistence operations needed by a monitoring cycle."""

    @abstractmethod
    async def list_active_sites(self, site_id: Optional[str] = None) -> List[Site]:
        pass

    @abstractmethod
    async def list_active_keywords(self, keyword_id: Optional[str] = None) -> List[Keyword]:
        pass

    @abstractmethod
    async def update_site(self, site_id: str, **fields: Any) -> None:
        pass

    @abstractmethod
    async def increment_keyword_counters(self, keyword_id: str, results: int, searched_at: datetime) -> None:
        """Add one search and ``results`` hits to a keyword's counters in a single write."""
        pass

    @abstractmethod
    async def exists_by_normalized_url(self, normalized_url: str) -> bool:
        pass

    @abstractmethod
    async def find_titles(self, source_name: str, prefix: str, limit: int = 10) -> List[str]:
        """Titles of at most ``limit`` documents from ``source_name`` containing ``prefix``."""
        pass

    @abstractmethod
    async def insert(self, document: PersistedDocument) -> PersistedDocument:
        """Insert a document; raises DuplicateDocumentError on a normalized URL clash."""
        pass

    @abstractmethod
    async def create_run_log(self, run_log: RunLog) -> RunLog:
        pass

    @abstractmethod
    async def finalize_run_log(self, run_log: RunLog) -> None:
        pass

    @abstractmethod
    async def update_config_last_run(self, when: datetime) -> None:
        pass


class InMemoryDocumentStore(DocumentStore):
    """Process-local store with the same uniqueness guarantees as the database."""

    def __init__(self, sites: Optional[List[Site]] = None, keywords: Optional[List[Keyword]] = None):
        self.sites: Dict[str, Site] = {site.id: site for site in sites or []}
        self.keywords: Dict[str, Keyword] = {keyword.id: keyword for keyword in keywords or []}
        self.documents: Dict[str, PersistedDocument] = {}
        self.run_logs: Dict[str, RunLog] = {}
        self.config = VeilleConfig()
        self._lock = threading.Lock()

    @classmethod
    def from_yaml(cls, config_path: str) -> "InMemoryDocumentStore":
        """Seed sites and keywords from a sources YAML file."""
        try:
            with open(config_path, "r", encoding="utf-8") as file:
                data = yaml.safe_load(file) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load sources from {config_path}: {e}", cause=e)

        sites = [Site(**entry) for entry in data.get("sites") or []]
        keywords = [Keyword(**entry) for entry in data.get("keywords") or []]
        logger.info(f"Loaded {len(sites)} sites and {len(keywords)} keywords from {config_path}")
        return cls(sites=sites, keywords=keywords)

    async def list_active_sites(self, site_id: Optional[str] = None) -> List[Site]:
        sites = [site for site in self.sites.values() if site.is_active]
        if site_id:
            sites = [site for site in sites if site.id == site_id]
        return [site.model_copy() for site in sites]

    async def list_active_keywords(self, keyword_id: Optional[str] = None) -> List[Keyword]:
        keywords = [keyword for keyword in self.keywords.values() if keyword.is_active]
        if keyword_id:
            keywords = [keyword for keyword in keywords if keyword.id == keyword_id]
        return [keyword.model_copy() for keyword in keywords]

    async def update_site(self, site_id: str, **fields: Any) -> None:
        site = self.sites.get(site_id)
        if site is not None:
            self.sites[site_id] = site.model_copy(update=fields)

    async def increment_keyword_counters(self, keyword_id: str, results: int, searched_at: datetime) -> None:
        with self._lock:
            keyword = self.keywords.get(keyword_id)
            if keyword is None:
                return
            self.keywords[keyword_id] = keyword.model_copy(update={
                "last_searched_at": searched_at,
                "total_searches": keyword.total_searches + 1,
                "total_results": keyword.total_results + results,
            })

    async def exists_by_normalized_url(self, normalized_url: str) -> bool:
        return normalized_url in self.documents

    async def find_titles(self, source_name: str, prefix: str, limit: int = 10) -> List[str]:
        needle = prefix.lower()
        titles = []
        for document in self.documents.values():
            if document.source_name == source_name and needle in document.title.lower():
                titles.append(document.title)
                if len(titles) >= limit:
                    break
        return titles

    async def insert(self, document: PersistedDocument) -> PersistedDocument:
        key = normalize_url(document.source_url)
        with self._lock:
            if key in self.documents:
                raise DuplicateDocumentError(f"Document already stored for {document.source_url}",
                                             target=document.source_url)
            self.documents[key] = document
        return document

    async def create_run_log(self, run_log: RunLog) -> RunLog:
        self.run_logs[run_log.id] = run_log
        return run_log

    async def finalize_run_log(self, run_log: RunLog) -> None:
        self.run_logs[run_log.id] = run_log

    async def update_config_last_run(self, when: datetime) -> None:
        self.config = VeilleConfig(last_run_at=when)
