"""
Caching helpers for data read on every POS render and filter dropdown.
Values live in Django's cache (Redis in production, local memory otherwise).
"""
from django.core.cache import cache
from functools import wraps
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
ACTIVE_PROMOTIONS_CACHE_TTL = 60
FILTER_OPTIONS_CACHE_TTL = 600

ACTIVE_PROMOTIONS_KEY = 'pricing:active_promotions'
PRODUCT_FILTER_OPTIONS_KEY = 'catalog:filter_options'


def cached_value(cache_key, cache_ttl):
    """
    Decorator caching the return value of a zero-argument loader under a fixed key

    Usage:
        @cached_value(PRODUCT_FILTER_OPTIONS_KEY, FILTER_OPTIONS_CACHE_TTL)
        def load_filter_options():
            return expensive_query()
    """
    def decorator(func):
        @wraps(func)
        def wrapper():
            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {cache_key}")
            result = func()
            cache.set(cache_key, result, cache_ttl)
            return result
        return wrapper
    return decorator


def invalidate_key(cache_key):
    try:
        cache.delete(cache_key)
        logger.info(f"Invalidated cache key: {cache_key}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache key {cache_key}: {str(e)}")


def invalidate_promotions_cache():
    """Invalidate the active promotions list"""
    invalidate_key(ACTIVE_PROMOTIONS_KEY)


def invalidate_filter_options_cache():
    """Invalidate category/manufacturer dropdown options"""
    invalidate_key(PRODUCT_FILTER_OPTIONS_KEY)
