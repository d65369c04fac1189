"""
Duplicate detection for candidate documents.

A candidate is a duplicate when its normalized URL is already stored, or when
its title is close enough to one of a small set of neighbouring titles from
the same source.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from loguru import logger

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

# Titles shorter than this give too many spurious prefix matches
MIN_TITLE_PREFIX = 10
TITLE_PREFIX_LENGTH = 50

TRACKING_PARAMS = {"fbclid", "gclid", "ref", "_ga", "mc_cid", "mc_eid"}


def _is_tracking_param(key: str) -> bool:
    key = key.lower()
    return key.startswith("utm_") or key in TRACKING_PARAMS


def normalize_url(url: str) -> str:
    """Canonical key for a URL.

    Scheme, host and path are lowercased and the trailing slash and fragment
    dropped. Tracking parameters are removed and the remaining query parameters
    kept in sorted order.
    """
    try:
        parts = urlsplit(url.strip())
        if not parts.scheme or not parts.netloc:
            raise ValueError(f"Not an absolute URL: {url}")
        path = parts.path.rstrip("/")
        params = [
            (key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if not _is_tracking_param(key)
        ]
        query = urlencode(sorted(params))
        return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path.lower(), query, ""))
    except ValueError:
        return url.strip().lower().rstrip("/")


def normalize_title(title: str) -> str:
    text = _PUNCTUATION.sub(" ", (title or "").lower())
    return _WHITESPACE.sub(" ", text).strip()


def similarity(title_a: str, title_b: str) -> float:
    """Jaccard similarity over words longer than two chars, plus 0.3 on containment."""
    a = normalize_title(title_a)
    b = normalize_title(title_b)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    words_a = {word for word in a.split(" ") if len(word) > 2}
    words_b = {word for word in b.split(" ") if len(word) > 2}
    if not words_a or not words_b:
        jaccard = 0.0
    else:
        jaccard = len(words_a & words_b) / len(words_a | words_b)

    bonus = 0.3 if (a in b or b in a) else 0.0
    return max(0.0, min(1.0, jaccard + bonus))


@dataclass(frozen=True)
class DuplicateCheck:
    is_duplicate: bool
    reason: Optional[str] = None


class DeduplicationEngine:
    """Checks candidates against the document store before insertion."""

    def __init__(self, store, similarity_threshold: float = 0.85, neighbour_limit: int = 10):
        self.store = store
        self.similarity_threshold = similarity_threshold
        self.neighbour_limit = neighbour_limit

        # Statistics
        self.total_checks = 0
        self.url_duplicates = 0
        self.title_duplicates = 0

    normalize_url = staticmethod(normalize_url)
    similarity = staticmethod(similarity)

    async def is_duplicate_by_url(self, url: str) -> bool:
        if not url:
            return False
        return await self.store.exists_by_normalized_url(normalize_url(url))

    def is_duplicate_by_title(self, title: str, nearby_titles: Iterable[str]) -> bool:
        return any(similarity(title, existing) >= self.similarity_threshold for existing in nearby_titles)

    async def check(self, url: str, title: str, source_name: str) -> DuplicateCheck:
        """URL check first, then the bounded title-similarity check."""
        self.total_checks += 1

        if await self.is_duplicate_by_url(url):
            self.url_duplicates += 1
            logger.debug(f"Duplicate URL detected: {url[:100]}")
            return DuplicateCheck(True, "url")

        prefix = (title or "").strip()[:TITLE_PREFIX_LENGTH]
        if len(normalize_title(prefix)) < MIN_TITLE_PREFIX:
            return DuplicateCheck(False)

        nearby = await self.store.find_titles(source_name, prefix, limit=self.neighbour_limit)
        if self.is_duplicate_by_title(title, nearby):
            self.title_duplicates += 1
            logger.debug(f"Similar title detected: {title[:100]}")
            return DuplicateCheck(True, "title")

        return DuplicateCheck(False)

    def get_statistics(self) -> Dict[str, Any]:
        duplicates = self.url_duplicates + self.title_duplicates
        duplicate_rate = (duplicates / self.total_checks * 100) if self.total_checks > 0 else 0
        return {
            "total_checks": self.total_checks,
            "url_duplicates": self.url_duplicates,
            "title_duplicates": self.title_duplicates,
            "duplicate_rate_percent": f"{duplicate_rate:.1f}%",
            "similarity_threshold": self.similarity_threshold,
        }

    def log_statistics(self) -> None:
        stats = self.get_statistics()
        logger.info("🔍 Duplicate Detector Statistics:")
        logger.info(f"  📊 Total checks: {stats['total_checks']}")
        logger.info(f"  🔗 URL duplicates: {stats['url_duplicates']}")
        logger.info(f"  📝 Title duplicates: {stats['title_duplicates']} ({stats['duplicate_rate_percent']} overall)")
