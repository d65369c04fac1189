# crawler/errors.py
"""
Exception taxonomy for the veille pipeline.

Only ConfigurationError is fatal to a run. Vendor errors are retried and then
recorded against the failing site or keyword, parse errors degrade to "no
candidates", and store errors skip a single insert.
"""
from typing import Optional


class VeilleError(Exception):
    """Base exception for veille pipeline operations."""

    def __init__(self, message: str, target: str = "", cause: Optional[Exception] = None):
        super().__init__(message)
        self.target = target
        self.cause = cause


class ConfigurationError(VeilleError):
    """Required vendor credentials or settings are missing."""
    pass


class TransientVendorError(VeilleError):
    """A vendor call failed in a way that may succeed on retry."""

    def __init__(self, message: str, status_code: Optional[int] = None, target: str = "",
                 cause: Optional[Exception] = None):
        super().__init__(message, target=target, cause=cause)
        self.status_code = status_code


class RateLimitError(TransientVendorError):
    """The vendor answered HTTP 429."""

    def __init__(self, message: str = "429 rate limit", target: str = "",
                 cause: Optional[Exception] = None):
        super().__init__(message, status_code=429, target=target, cause=cause)


class ClassificationParseError(VeilleError):
    """AI output could not be parsed, even after repair."""
    pass


class StoreWriteError(VeilleError):
    """A single document insert failed."""
    pass


class DuplicateDocumentError(StoreWriteError):
    """The store already holds a document with the same normalized source URL."""
    pass


def is_rate_limit_error(error: BaseException) -> bool:
    """Whether an exception signals vendor rate limiting."""
    if isinstance(error, RateLimitError):
        return True
    if getattr(error, "status_code", None) == 429 or getattr(error, "status", None) == 429:
        return True
    message = str(error).lower()
    return "429" in message or "rate limit" in message
