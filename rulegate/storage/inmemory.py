"""
In-memory rule storage.

Rules are indexed by action, then by resource type, so that ``query_rules``
is two dictionary lookups. Each ``set_rules`` call builds a fresh index and
swaps it in, so readers never observe a half-replaced rule set.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from rulegate.caching import InMemoryRuleCache

if TYPE_CHECKING:
    from rulegate.caching import RuleCache
    from rulegate.types import Rule

logger = logging.getLogger(__name__)

RuleIndex = dict[str, dict[str, list["Rule"]]]


class InMemoryStorage:
    """
    Storage keeping rules in process memory.

    Attributes:
        cache: In-memory cache offered to the facade. Pass ``cache=None``
            to run without one.

    Example:
        >>> storage = InMemoryStorage()
        >>> await storage.set_rules([rule])
        >>> await storage.query_rules("read", "post")
        [Rule(resource='post', action='read', ...)]
    """

    def __init__(self, cache: RuleCache | None = None, use_cache: bool = True) -> None:
        self._rules: list[Rule] = []
        self._index: RuleIndex = {}
        self._lock = threading.RLock()
        self.cache: RuleCache | None = cache if cache is not None else (
            InMemoryRuleCache() if use_cache else None
        )

    async def set_rules(self, rules: list[Rule]) -> None:
        index: RuleIndex = {}
        for rule in rules:
            index.setdefault(rule.action, {}).setdefault(rule.resource, []).append(rule)

        with self._lock:
            self._rules = list(rules)
            self._index = index
        logger.debug(f"Stored {len(rules)} rules")

    async def get_rules(self) -> list[Rule]:
        with self._lock:
            return list(self._rules)

    async def query_rules(self, action: str, resource: str) -> list[Rule]:
        with self._lock:
            index = self._index
        return list(index.get(action, {}).get(resource, []))

    async def clear_rules(self) -> None:
        with self._lock:
            self._rules = []
            self._index = {}
        logger.debug("Cleared all rules")
