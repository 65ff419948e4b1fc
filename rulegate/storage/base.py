"""
Storage protocol for Rulegate.

A storage holds the current rule set. The facade replaces the rule set
wholesale through ``set_rules`` and reads candidate rules for a request
through ``query_rules``, which should be the storage's efficient, filtered
entry point. Implementations may also expose a ``cache`` attribute
implementing ``rulegate.caching.RuleCache``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rulegate.caching import RuleCache
    from rulegate.types import Rule


@runtime_checkable
class Storage(Protocol):
    """
    Protocol defining the interface for rule storages.

    Example:
        >>> class ListStorage:
        ...     cache = None
        ...
        ...     def __init__(self):
        ...         self.rules = []
        ...
        ...     async def set_rules(self, rules):
        ...         self.rules = list(rules)
        ...
        ...     async def get_rules(self):
        ...         return list(self.rules)
        ...
        ...     async def query_rules(self, action, resource):
        ...         return [r for r in self.rules
        ...                 if r.action == action and r.resource == resource]
        ...
        ...     async def clear_rules(self):
        ...         self.rules = []
    """

    cache: RuleCache | None

    async def set_rules(self, rules: list[Rule]) -> None:
        """Replace the stored rule set with ``rules``."""
        ...

    async def get_rules(self) -> list[Rule]:
        """Return every stored rule."""
        ...

    async def query_rules(self, action: str, resource: str) -> list[Rule]:
        """
        Return the rules for an action and resource type.

        Rules are returned in insertion order; an empty list if none exist.
        """
        ...

    async def clear_rules(self) -> None:
        """Remove every stored rule."""
        ...
