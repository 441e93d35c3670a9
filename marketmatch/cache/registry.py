"""Cache tiers and table-scoped administration."""

import time
from typing import Dict, Optional, Tuple

from marketmatch.config.models import CacheConfig
from marketmatch.domain.exceptions import RequestValidationError
from marketmatch.domain.models import ListingKind
from marketmatch.logging import get_logger

from .keys import RESOURCE_PREFIX, SEARCH_PREFIX, SERVICE_PREFIX, USER_PREFIX
from .service import Clock, ResultCache

logger = get_logger(__name__, component="cache")

GENERAL_TIER = "general"
STATIC_TIER = "static"
USER_TIER = "user"

# Admin table name -> (tier, key prefixes cleared)
TABLE_PREFIXES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "resources": (GENERAL_TIER, (RESOURCE_PREFIX, SEARCH_PREFIX)),
    "services": (GENERAL_TIER, (SERVICE_PREFIX, SEARCH_PREFIX)),
    "users": (USER_TIER, (USER_PREFIX,)),
}

KIND_TABLES = {
    ListingKind.SERVICE: "services",
    ListingKind.RESOURCE: "resources",
}


class CacheRegistry:
    """Owns the general, static and user cache tiers.

    - general: search and match results (default TTL)
    - static: rarely changing reference data (long TTL)
    - user: per-user data (short TTL)
    """

    def __init__(self, config: Optional[CacheConfig] = None, clock: Clock = time.monotonic):
        config = config or CacheConfig()
        self.general = ResultCache(config.default_ttl_seconds, clock=clock, name=GENERAL_TIER)
        self.static = ResultCache(config.long_ttl_seconds, clock=clock, name=STATIC_TIER)
        self.user = ResultCache(config.short_ttl_seconds, clock=clock, name=USER_TIER)

    @property
    def tiers(self) -> Dict[str, ResultCache]:
        return {GENERAL_TIER: self.general, STATIC_TIER: self.static, USER_TIER: self.user}

    def stats(self) -> Dict:
        """Per-tier counters, a per-table key breakdown and the live keys."""
        general_keys = self.general.keys()
        resources = sum(1 for key in general_keys if key.startswith(RESOURCE_PREFIX))
        services = sum(1 for key in general_keys if key.startswith(SERVICE_PREFIX))
        users = sum(1 for key in self.user.keys() if key.startswith(USER_PREFIX))

        return {
            "stats": {name: tier.stats().to_dict() for name, tier in self.tiers.items()},
            "tables": {
                "resources": resources,
                "services": services,
                "users": users,
                "other": len(general_keys) - resources - services,
            },
            "cacheKeys": {name: tier.keys() for name, tier in self.tiers.items()},
        }

    def clear_all(self) -> int:
        """Empty every tier. Returns the number of entries removed."""
        removed = sum(tier.clear() for tier in self.tiers.values())
        logger.info(
            "Cleared all cache tiers",
            extra={"event": "cache.cleared", "removed": removed},
        )
        return removed

    def clear_table(self, table: str) -> int:
        """Remove entries derived from one listing table.

        Args:
            table: One of ``resources``, ``services``, ``users``

        Returns:
            Number of entries removed

        Raises:
            RequestValidationError: For any other table name
        """
        if table not in TABLE_PREFIXES:
            raise RequestValidationError(
                f"unsupported table '{table}'; use one of: {', '.join(TABLE_PREFIXES)}",
                field="table",
            )
        tier_name, prefixes = TABLE_PREFIXES[table]
        tier = self.tiers[tier_name]
        return sum(tier.invalidate_by_prefix(prefix) for prefix in prefixes)

    def invalidate_for_kind(self, kind: ListingKind) -> int:
        """Drop cached results derived from listings of ``kind``."""
        return self.clear_table(KIND_TABLES[ListingKind(kind)])

    def purge_expired(self) -> int:
        """Sweep expired entries from every tier."""
        return sum(tier.purge_expired() for tier in self.tiers.values())
