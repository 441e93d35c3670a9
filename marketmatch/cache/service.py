"""Thread-safe TTL cache with prefix invalidation.

The clock is injected so tests can expire entries without sleeping. Map
operations run under a lock; computations on a miss run outside it, so two
threads missing the same key may both compute and the last write wins. A
result whose computation overlapped an invalidation is returned to its caller
but never stored.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from marketmatch.logging import get_logger

logger = get_logger(__name__, component="cache")

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """Stored value and the clock reading at which it stops being served."""

    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


@dataclass
class CacheStats:
    """Counters for one cache instance."""

    keys: int = 0
    hits: int = 0
    misses: int = 0
    sets: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"keys": self.keys, "hits": self.hits, "misses": self.misses, "sets": self.sets}


class ResultCache:
    """In-memory TTL map keyed by strings.

    Attributes:
        name: Label used in logs and stats
        default_ttl: Seconds an entry lives when ``set`` gets no ttl
    """

    def __init__(self, default_ttl: float, clock: Clock = time.monotonic, name: str = "general"):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.name = name
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sets = 0
        # Bumped by every invalidation
        self._generation = 0

    def _lookup(self, key: str) -> Tuple[bool, Any]:
        """Return (found, value), dropping the entry if it has expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_expired(now):
                del self._entries[key]
                entry = None
            if entry is None:
                self._misses += 1
                return False, None
            self._hits += 1
            return True, entry.value

    def get(self, key: str, default: Any = None) -> Any:
        """Cached value for ``key``, or ``default`` when absent or expired."""
        found, value = self._lookup(key)
        return value if found else default

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store ``value`` until ``now + ttl`` (default TTL when ttl is None)."""
        self._store(key, value, ttl, generation=None)

    def _store(self, key: str, value: Any, ttl: Optional[float], generation: Optional[int]) -> bool:
        """Store unless ``generation`` is given and an invalidation has happened since."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        expires_at = self._clock() + ttl
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=expires_at)
            self._sets += 1
            return True

    def get_or_compute(self, key: str, compute: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """Return the cached value, or compute, store and return it.

        Exceptions from ``compute`` propagate and nothing is stored. When an
        invalidation or clear runs while ``compute`` is in progress, the
        result is returned but not stored.
        """
        found, value = self._lookup(key)
        if found:
            logger.debug("Cache hit", extra={"event": "cache.hit", "tier": self.name, "key": key})
            return value

        logger.debug("Cache miss", extra={"event": "cache.miss", "tier": self.name, "key": key})
        with self._lock:
            generation = self._generation
        value = compute()
        if not self._store(key, value, ttl, generation=generation):
            logger.debug(
                "Discarded result computed across an invalidation",
                extra={"event": "cache.stale_discarded", "tier": self.name, "key": key},
            )
        return value

    def delete(self, key: str) -> bool:
        """Remove one key. Returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_by_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``.

        Returns:
            Number of entries removed
        """
        with self._lock:
            self._generation += 1
            matching = [key for key in self._entries if key.startswith(prefix)]
            for key in matching:
                del self._entries[key]

        if matching:
            logger.info(
                f"Invalidated {len(matching)} cache entries with prefix '{prefix}'",
                extra={"event": "cache.invalidated", "tier": self.name, "prefix": prefix, "removed": len(matching)},
            )
        return len(matching)

    def purge_expired(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> int:
        """Remove all entries. Returns the number removed."""
        with self._lock:
            self._generation += 1
            removed = len(self._entries)
            self._entries.clear()
        return removed

    def keys(self) -> List[str]:
        """Keys of entries that have not expired."""
        now = self._clock()
        with self._lock:
            return [key for key, entry in self._entries.items() if not entry.is_expired(now)]

    def stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            return CacheStats(
                keys=sum(1 for entry in self._entries.values() if not entry.is_expired(now)),
                hits=self._hits,
                misses=self._misses,
                sets=self._sets,
            )

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(now)
