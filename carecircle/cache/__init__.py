"""
Redis caching layer for the CareCircle mirror.

Provides:
- Redis client that degrades to a no-op when unconfigured
- @cached decorator for read-heavy aggregates
- Hit/miss statistics
"""

from .redis_client import get_redis, close_redis, cache, CacheClient
from .decorators import cached
from .stats import stats, CacheStats

__all__ = [
    "get_redis",
    "close_redis",
    "cache",
    "CacheClient",
    "cached",
    "stats",
    "CacheStats",
]
