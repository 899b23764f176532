"""In-memory response cache with per-resource-type TTLs.

Designed to sit in front of the remote store: minimal dependencies, driven
from a single event loop, and easy to swap for Redis while keeping the same
interface and behaviors.
"""

from __future__ import annotations

import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from governor.schemas.status import CacheStats

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached response and the moment it was stored."""

    key: str
    value: Any
    stored_at: float


class ResourceTypePolicy:
    """Resolve the TTL for a resource type by substring match.

    Patterns are checked in insertion order and the first one contained in
    the resource type wins; unmatched types get ``default_ttl``.
    """

    def __init__(self, patterns: Mapping[str, float] | None = None, default_ttl: float = 30.0) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be > 0")
        for pattern, ttl in (patterns or {}).items():
            if ttl <= 0:
                raise ValueError(f"TTL for '{pattern}' must be > 0")
        self._patterns = dict(patterns or {})
        self._default_ttl = default_ttl

    def ttl_for(self, resource_type: str) -> float:
        for pattern, ttl in self._patterns.items():
            if pattern in resource_type:
                return ttl
        return self._default_ttl


def build_cache_key(resource_type: str, params: Mapping[str, Any] | None = None) -> str:
    """Build a stable cache key from a resource type and its parameters.

    Parameters are JSON-encoded with sorted names, so ``{"a": 1, "b": 2}``
    and ``{"b": 2, "a": 1}`` share an entry while values containing ``&``
    or ``=`` and ``True`` versus ``"True"`` stay distinct.

    Example:
        >>> build_cache_key("businesses", {"current": True, "limit": 1})
        'businesses:{"current":true,"limit":1}'
    """

    encoded = json.dumps(dict(params or {}), sort_keys=True, default=str, separators=(",", ":"))
    return f"{resource_type}:{encoded}"


def _resource_type_of(key: str) -> str:
    return key.split(":", 1)[0]


class TTLCache:
    """In-memory TTL cache with oldest-first eviction.

    Entries live in one ordered mapping. ``set`` moves the key to the end,
    so the first entry is always the one with the smallest ``stored_at``
    and capacity eviction is O(1).

    Attributes:
        policy: TTL resolution per resource type.
        max_size: Maximum number of cached entries.
    """

    def __init__(
        self,
        policy: ResourceTypePolicy | None = None,
        *,
        max_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.policy = policy or ResourceTypePolicy()
        self.max_size = max_size
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"TTLCache(max_size={self.max_size}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, evictions={self._evictions})"
        )

    def __len__(self) -> int:
        return len(self._store)

    def get(self, resource_type: str, params: Mapping[str, Any] | None = None) -> Any | None:
        """Retrieve a cached value if it exists and is still fresh.

        An expired entry is evicted on the spot; that is the only mutation a
        read can cause.

        Returns:
            Cached value or None if not found/expired.
        """

        key = build_cache_key(resource_type, params)
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            logger.debug("cache.miss", extra={"cache_key": key, "reason": "not_found"})
            return None

        age = self._clock() - entry.stored_at
        if age >= self.policy.ttl_for(resource_type):
            self._evict(key)
            self._misses += 1
            logger.debug(
                "cache.miss",
                extra={"cache_key": key, "reason": "expired", "age_s": round(age, 3)},
            )
            return None

        self._hits += 1
        logger.debug("cache.hit", extra={"cache_key": key, "age_s": round(age, 3)})
        return entry.value

    def set(self, resource_type: str, params: Mapping[str, Any] | None, value: Any) -> None:
        """Store a value, restamping its freshness.

        When the cache is full and the key is new, the oldest entry is
        evicted first.
        """

        key = build_cache_key(resource_type, params)
        if key not in self._store and len(self._store) >= self.max_size:
            oldest_key = next(iter(self._store))
            self._evict(oldest_key)
            logger.debug("cache.evicted", extra={"cache_key": oldest_key, "reason": "capacity"})

        self._store[key] = CacheEntry(key=key, value=value, stored_at=self._clock())
        self._store.move_to_end(key)

        logger.debug(
            "cache.set",
            extra={
                "cache_key": key,
                "size": len(self._store),
                "ttl_s": self.policy.ttl_for(resource_type),
            },
        )

    def invalidate(self, resource_type: str) -> int:
        """Drop every entry of a resource type, e.g. after a write."""

        prefix = f"{resource_type}:"
        doomed = [key for key in self._store if key.startswith(prefix)]
        for key in doomed:
            del self._store[key]
        logger.info(
            "cache.invalidated",
            extra={"resource_type": resource_type, "removed": len(doomed)},
        )
        return len(doomed)

    def cleanup(self) -> int:
        """Sweep all expired entries. Returns how many were removed."""

        now = self._clock()
        expired = [key for key, entry in self._store.items() if self._is_expired(entry, now)]
        for key in expired:
            self._evict(key)
        if expired:
            logger.info("cache.cleanup", extra={"removed": len(expired), "size": len(self._store)})
        return len(expired)

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        self._store.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        logger.info("cache.cleared")

    def stats(self) -> CacheStats:
        """Return cache metrics without exposing values."""

        now = self._clock()
        expired = sum(1 for entry in self._store.values() if self._is_expired(entry, now))
        total = len(self._store)
        return CacheStats(
            total_entries=total,
            valid_entries=total - expired,
            expired_entries=expired,
            max_size=self.max_size,
            usage_percent=f"{total / self.max_size * 100:.1f}%",
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
        )

    def _evict(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at >= self.policy.ttl_for(_resource_type_of(entry.key))
