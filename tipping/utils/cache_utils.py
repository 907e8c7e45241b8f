"""
Cache utilities for the F1 tipping application

Leaderboards are the expensive read; they are cached per league and season
and dropped wholesale whenever any score changes.
"""

import functools

from flask import current_app

from tipping import cache


def cached_query(model_name, timeout=None):
    """
    Decorator for caching query results keyed on the call arguments

    Args:
        model_name: Name used as the cache key prefix
        timeout: Cache timeout in seconds (default LEADERBOARD_CACHE_TIMEOUT)
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            args_str = "_".join(str(arg) for arg in args)
            kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
            cache_key = f"query_{model_name}_{f.__name__}_{args_str}_{kwargs_str}"

            result = cache.get(cache_key)
            if result is not None:
                current_app.logger.debug(f"Query cache hit: {cache_key}")
                return result

            result = f(*args, **kwargs)
            cache.set(
                cache_key,
                result,
                timeout=timeout or current_app.config.get("LEADERBOARD_CACHE_TIMEOUT", 600),
            )
            current_app.logger.debug(f"Query cache set: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate cache keys matching a pattern

    SimpleCache and RedisCache share no pattern delete in Flask-Caching, so
    the whole prefix is cleared.
    """
    try:
        cache.clear()
        current_app.logger.info(f"Cache cleared for pattern: {pattern}")
    except Exception as e:
        current_app.logger.error(f"Failed to clear cache: {e}")


def invalidate_leaderboard_cache():
    invalidate_cache_pattern("*leaderboard*")


def get_cache_stats():
    return {
        "type": current_app.config.get("CACHE_TYPE", "Unknown"),
        "timeout": current_app.config.get("CACHE_DEFAULT_TIMEOUT", 300),
        "leaderboard_timeout": current_app.config.get("LEADERBOARD_CACHE_TIMEOUT", 600),
    }
