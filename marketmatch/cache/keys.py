"""Deterministic cache keys from request parameters."""

import json
from typing import Any, Mapping, Optional

# Key prefixes. Listing mutations invalidate by the leading segment, so every
# service-derived key starts with "service" and every resource-derived key
# with "resource".
MATCH_PREFIX = "service:match"
ENGINEER_SEARCH_PREFIX = "service:engineer-search"
SEARCH_PREFIX = "search"
RESOURCE_PREFIX = "resource"
SERVICE_PREFIX = "service"
USER_PREFIX = "user"


def generate_cache_key(prefix: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Build ``prefix-{json}`` from parameters.

    None values are dropped and keys are sorted, so equal parameter sets give
    equal keys regardless of insertion order. With no remaining parameters
    the key is just ``prefix``.

    Example:
        >>> generate_cache_key("search", {"q": "pcb", "lang": "en", "page": None})
        'search-{"lang":"en","q":"pcb"}'
    """
    filtered = {key: value for key, value in (params or {}).items() if value is not None}
    if not filtered:
        return prefix
    encoded = json.dumps(filtered, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    return f"{prefix}-{encoded}"
