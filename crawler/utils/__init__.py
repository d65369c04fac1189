"""
Utility modules for the veille crawler.
"""
from .batch import process_batch
from .circuit_breaker import CircuitBreaker
from .rate_limiter import RateLimiter
from .retry import RetryExecutor

__all__ = [
    'process_batch',
    'CircuitBreaker',
    'RateLimiter',
    'RetryExecutor'
]
