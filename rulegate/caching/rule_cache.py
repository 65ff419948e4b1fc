"""
Caching for derived rule data.

The engine caches conditions whose contextual operands have been replaced
with context values, keyed by a structural hash of the condition and the
context values it refers to. The cache is an optimization only: decisions are identical with
no cache at all.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from rulegate.exceptions import UncacheableValueError

logger = logging.getLogger(__name__)

# Sentinel object to distinguish cache misses from cached None values
CACHE_MISS = object()


@runtime_checkable
class RuleCache(Protocol):
    """
    Capability interface for a key/value cache.

    Example:
        >>> class DictCache:
        ...     def __init__(self):
        ...         self.data = {}
        ...     def get(self, key, default=None):
        ...         return self.data.get(key, default)
        ...     def set(self, key, value):
        ...         self.data[key] = value
        ...     def has(self, key):
        ...         return key in self.data
        ...     def clear(self):
        ...         self.data.clear()
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or ``default`` on a miss."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a value."""
        ...

    def has(self, key: str) -> bool:
        """Check whether a key is cached."""
        ...

    def clear(self) -> None:
        """Remove every entry."""
        ...


@dataclass
class CacheStats:
    """
    Cache statistics.

    Attributes:
        hits: Number of cache hits.
        misses: Number of cache misses.
        size: Current number of entries.
        clears: Number of times the cache was cleared.
    """

    hits: int = 0
    misses: int = 0
    size: int = 0
    clears: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "clears": self.clears,
            "hit_rate": self.hit_rate,
            "total_requests": self.total_requests,
        }


class InMemoryRuleCache:
    """
    Thread-safe in-memory cache.

    Entries live until ``clear()`` is called; there is no expiry and no
    eviction. The facade clears the cache whenever the rule set is replaced.

    Example:
        >>> cache = InMemoryRuleCache()
        >>> cache.set("key", {"value": 1})
        >>> cache.get("key")
        {'value': 1}
        >>> cache.get_stats().hits
        1
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._stats = CacheStats()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._entries:
                self._stats.misses += 1
                return default
            self._stats.hits += 1
            return self._entries[key]

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = value
            self._stats.size = len(self._entries)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._stats.size = 0
            self._stats.clears += 1
        logger.debug(f"Cleared {count} cache entries")

    def get_stats(self) -> CacheStats:
        """Get a snapshot of the cache statistics."""
        with self._lock:
            return CacheStats(
                hits=self._stats.hits,
                misses=self._stats.misses,
                size=len(self._entries),
                clears=self._stats.clears,
            )

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _canonical(value: Any) -> Any:
    """
    Type-tagged JSON-ready form of a value.

    Raises:
        UncacheableValueError: For values with no structural encoding.
    """
    if value is None:
        return ["null"]
    if isinstance(value, bool):
        return ["bool", value]
    if isinstance(value, int):
        return ["int", value]
    if isinstance(value, float):
        return ["float", repr(value)]
    if isinstance(value, str):
        return ["str", value]
    if isinstance(value, (list, tuple)):
        return ["array", [_canonical(item) for item in value]]
    if isinstance(value, Mapping):
        entries = [
            [_canonical(key), _canonical(item)] for key, item in value.items()
        ]
        entries.sort(key=lambda entry: json.dumps(entry[0], separators=(",", ":")))
        return ["object", entries]
    raise UncacheableValueError(value)


def fingerprint(value: Any) -> str:
    """
    Stable structural hash of a JSON-like value.

    Every value is tagged with its type, so ``1``, ``1.0``, ``True`` and
    ``"1"`` hash differently. Mapping key order does not affect the result.

    Raises:
        UncacheableValueError: If the value contains anything other than
            None, booleans, numbers, strings, sequences and mappings.
    """
    canonical = json.dumps(_canonical(value), separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def make_cache_key(namespace: str, *parts: Any) -> str:
    """
    Build a cache key from a namespace and the fingerprints of ``parts``.

    Raises:
        UncacheableValueError: If a part has no structural encoding.
    """
    return f"{namespace}:" + ":".join(fingerprint(part) for part in parts)
