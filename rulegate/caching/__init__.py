"""
Caching components for Rulegate.

Example:
    >>> from rulegate.caching import InMemoryRuleCache, make_cache_key
    >>>
    >>> cache = InMemoryRuleCache()
    >>> key = make_cache_key("ctx-operands", {"a": ["eq", "$ctx.a"]}, {"a": 1})
    >>> cache.set(key, "substituted")
    >>> cache.has(key)
    True
"""

from rulegate.caching.rule_cache import (
    CACHE_MISS,
    CacheStats,
    InMemoryRuleCache,
    RuleCache,
    fingerprint,
    make_cache_key,
)

__all__ = [
    "CACHE_MISS",
    "CacheStats",
    "InMemoryRuleCache",
    "RuleCache",
    "fingerprint",
    "make_cache_key",
]
