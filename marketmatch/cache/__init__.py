"""TTL result caching with prefix invalidation."""

from .keys import (
    ENGINEER_SEARCH_PREFIX,
    MATCH_PREFIX,
    RESOURCE_PREFIX,
    SEARCH_PREFIX,
    SERVICE_PREFIX,
    USER_PREFIX,
    generate_cache_key,
)
from .registry import TABLE_PREFIXES, CacheRegistry
from .service import CacheEntry, CacheStats, ResultCache

__all__ = [
    "CacheEntry",
    "CacheRegistry",
    "CacheStats",
    "ResultCache",
    "TABLE_PREFIXES",
    "generate_cache_key",
    "ENGINEER_SEARCH_PREFIX",
    "MATCH_PREFIX",
    "RESOURCE_PREFIX",
    "SEARCH_PREFIX",
    "SERVICE_PREFIX",
    "USER_PREFIX",
]
