"""Utility modules for the CLOB client."""

from .retry import RetryPolicy, RetryStrategy, is_retryable
from .cache import TTLCache, MetadataCache

__all__ = [
    "RetryPolicy",
    "RetryStrategy",
    "is_retryable",
    "TTLCache",
    "MetadataCache",
]
