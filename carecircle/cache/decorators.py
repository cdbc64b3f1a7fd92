"""
Caching decorators.
"""
import functools
import hashlib
import logging
from typing import Callable
from .redis_client import cache
from .stats import stats

logger = logging.getLogger(__name__)


def _generate_cache_key(
    func_name: str,
    args: tuple,
    kwargs: dict,
    key_prefix: str = "",
    skip_first_arg: bool = False
) -> str:
    """
    Generate cache key from function name and arguments.

    Args:
        func_name: Function name
        args: Positional arguments
        kwargs: Keyword arguments
        key_prefix: Optional prefix for the key
        skip_first_arg: Skip first arg (for instance methods - skip self)

    Returns:
        Cache key string
    """
    key_parts = [key_prefix or func_name]

    start_idx = 1 if skip_first_arg and args else 0
    for arg in args[start_idx:]:
        if isinstance(arg, (str, int, float, bool)):
            key_parts.append(str(arg))
        else:
            key_parts.append(hashlib.md5(repr(arg).encode()).hexdigest()[:8])

    for k, v in sorted(kwargs.items()):
        if isinstance(v, (str, int, float, bool)):
            key_parts.append(f"{k}={v}")
        else:
            key_parts.append(f"{k}={hashlib.md5(str(v).encode()).hexdigest()[:8]}")

    return ":".join(key_parts)


def _is_method_call(func: Callable, args: tuple) -> bool:
    return bool(args) and hasattr(args[0].__class__, func.__name__)


def cached(
    ttl: int = 30,
    key_prefix: str = "",
    skip_none: bool = True
):
    """
    Cache an async function's JSON-serializable result in Redis.

    Args:
        ttl: Time to live in seconds
        key_prefix: Prefix for cache key (default: function name)
        skip_none: Don't cache None results (default: True)

    Usage:
        @cached(ttl=30, key_prefix="stats:circle")
        async def compute_stats(self, circle_id: int):
            ...
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            cache_key = _generate_cache_key(
                func.__name__,
                args,
                kwargs,
                key_prefix,
                skip_first_arg=_is_method_call(func, args)
            )

            cached_value = await cache.get(cache_key)
            if cached_value is not None:
                stats.record_hit()
                logger.debug(f"Cache HIT: {cache_key}")
                return cached_value

            stats.record_miss()
            logger.debug(f"Cache MISS: {cache_key}")
            result = await func(*args, **kwargs)

            if result is not None or not skip_none:
                await cache.set(cache_key, result, ttl)
                logger.debug(f"Cache SET: {cache_key} (TTL: {ttl}s)")

            return result

        return wrapper

    return decorator
