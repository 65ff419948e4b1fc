"""
Core Rulegate class.

This module provides the main entry point of the library. ``Rulegate``
wires the rule storage, the context provider, the substitution cache and
metrics around the pure resolution engine, and exposes the asynchronous
permission API: ``set_rules``, ``get_rules``, ``related_rules_for``,
``can``, ``cannot``, ``explain`` and ``query_filter_for``.
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar, Union

from rulegate.caching import RuleCache
from rulegate.conditions.parser import parse_condition, parse_rules
from rulegate.engines.resolution import DEFAULT_MAX_RULE_ITERATIONS, RuleResolutionEngine
from rulegate.exceptions import ConfigurationError
from rulegate.observability.hooks import MetricHook, NoOpMetricHook
from rulegate.storage.base import Storage
from rulegate.storage.inmemory import InMemoryStorage
from rulegate.types import Effect, Resolution, Rule

logger = logging.getLogger(__name__)

T = TypeVar("T")

ContextProvider = Callable[[], Union[Mapping[str, Any], None, Awaitable[Union[Mapping[str, Any], None]]]]
RuleBuilder = Callable[[str, Any], None]
RulesCallback = Callable[[RuleBuilder, RuleBuilder], Union[None, Awaitable[None]]]


@dataclass
class RulegateConfig:
    """
    Configuration for a Rulegate instance.

    Attributes:
        max_rule_iterations: Circuit breaker ceiling on the candidate rules
            inspected per check. Exceeding it forces a deny.
        cache_enabled: Whether to cache conditions with substituted
            contextual operands.

    Example:
        >>> config = RulegateConfig(max_rule_iterations=200, cache_enabled=False)
    """

    max_rule_iterations: int = DEFAULT_MAX_RULE_ITERATIONS
    cache_enabled: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if (
            not isinstance(self.max_rule_iterations, int)
            or isinstance(self.max_rule_iterations, bool)
            or self.max_rule_iterations < 1
        ):
            raise ConfigurationError(
                config_key="max_rule_iterations",
                expected="a positive integer",
                received=self.max_rule_iterations,
            )


async def _maybe_await(value: T | Awaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


def _split_resource(resource: Any) -> tuple[str, Any, bool]:
    """Split a resource argument into (resource key, instance, has instance)."""
    if isinstance(resource, str):
        return resource, None, False
    if isinstance(resource, (tuple, list)) and len(resource) == 2 and isinstance(resource[0], str):
        return resource[0], resource[1], True
    raise TypeError(
        "resource must be a resource key or a (resource key, instance) pair, "
        f"got {type(resource).__name__}"
    )


class Rulegate:
    """
    Attribute-based permission checks over allow/deny rules.

    Features:
        - Rules scoped to an action and a resource type, with optional
          conditions on the resource instance
        - Contextual operands (``"$ctx.user.id"``) resolved against a
          per-check context
        - Deny rules veto allow rules
        - Circuit breaker against pathological rule sets
        - Pluggable storage and cache

    Example:
        >>> gate = await create_rulegate(get_context=lambda: {"userId": "u1"})
        >>> await gate.set_rules(lambda allow, deny: (
        ...     allow("read", "post"),
        ...     deny("read", ("post", {"published": ["eq", False]})),
        ...     allow("update", ("post", {"ownerId": ["eq", "$ctx.userId"]})),
        ... ))
        >>>
        >>> await gate.can("read", ("post", {"published": True}))
        True
        >>> await gate.can("read", ("post", {"published": False}))
        False
        >>> await gate.can("update", ("post", {"ownerId": "u2"}))
        False
    """

    def __init__(
        self,
        storage: Storage | None = None,
        get_context: ContextProvider | None = None,
        cache: RuleCache | None = None,
        config: RulegateConfig | None = None,
        metric_hook: MetricHook | None = None,
    ) -> None:
        """
        Initialize Rulegate.

        Args:
            storage: Rule storage. Defaults to an InMemoryStorage.
            get_context: Zero-argument callable returning the context
                (or an awaitable of it). Called once per check that
                evaluates a condition.
            cache: Cache for substituted conditions. Defaults to the
                storage's ``cache`` attribute, if any.
            config: Rulegate configuration.
            metric_hook: Optional metrics backend.
        """
        self.config = config or RulegateConfig()
        self._storage: Storage = storage if storage is not None else InMemoryStorage()
        self._get_context = get_context
        self._metrics: MetricHook = metric_hook or NoOpMetricHook()

        self._cache: RuleCache | None = None
        if self.config.cache_enabled:
            self._cache = cache if cache is not None else getattr(self._storage, "cache", None)

        self._engine = RuleResolutionEngine(
            config={"max_rule_iterations": self.config.max_rule_iterations},
            cache=self._cache,
        )

    @property
    def storage(self) -> Storage:
        return self._storage

    @property
    def cache(self) -> RuleCache | None:
        return self._cache

    @property
    def engine(self) -> RuleResolutionEngine:
        return self._engine

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    async def set_rules(self, rules: Iterable[Any] | RulesCallback) -> None:
        """
        Replace the whole rule set.

        Args:
            rules: Rules (Rule objects or raw mappings), or a callback that
                receives ``allow`` and ``deny`` builder functions. Each
                builder takes an action and either a resource key or a
                ``(resource key, condition)`` pair.

        Raises:
            RuleValidationError: If a raw rule is structurally invalid.

        Example:
            >>> await gate.set_rules(lambda allow, deny: (
            ...     allow("read", "post"),
            ...     deny("delete", ("post", {"locked": ["eq", True]})),
            ... ))
        """
        if callable(rules):
            parsed = await self._collect_rules(rules)
        else:
            parsed = parse_rules(rules)

        await self._storage.clear_rules()
        await self._storage.set_rules(parsed)
        if self._cache is not None:
            self._cache.clear()

        logger.debug(f"Rule set replaced with {len(parsed)} rules")

    async def _collect_rules(self, callback: RulesCallback) -> list[Rule]:
        collected: list[Rule] = []

        def builder(effect: Effect) -> RuleBuilder:
            def add(action: str, resource: Any) -> None:
                if isinstance(resource, str):
                    key, condition = resource, None
                else:
                    key, condition = resource
                collected.append(
                    Rule(
                        resource=key,
                        action=action,
                        condition=parse_condition(condition) if condition is not None else None,
                        effect=effect,
                    )
                )
            return add

        await _maybe_await(callback(builder(Effect.ALLOW), builder(Effect.DENY)))
        return collected

    async def get_rules(self) -> list[Rule]:
        """Get every stored rule."""
        return await self._storage.get_rules()

    async def get_context(self) -> Mapping[str, Any]:
        """Fetch the current context from the context provider."""
        if self._get_context is None:
            return {}
        context = await _maybe_await(self._get_context())
        return context if context is not None else {}

    async def related_rules_for(
        self,
        action: str,
        resource: str,
        *,
        apply_condition_contextual_operands: bool = False,
    ) -> list[Rule]:
        """
        Get the rules stored for an action and resource type.

        Args:
            action: The action.
            resource: The resource type key.
            apply_condition_contextual_operands: Replace contextual operands
                in the returned conditions with their current context values.

        Example:
            >>> rules = await gate.related_rules_for(
            ...     "read", "user", apply_condition_contextual_operands=True
            ... )
            >>> rules[0].condition.to_raw()
            {'name': ['eq', 'john doe', {'caseInsensitive': True}]}
        """
        rules = await self._storage.query_rules(action, resource)
        if not apply_condition_contextual_operands or all(rule.condition is None for rule in rules):
            return rules

        context = await self.get_context()
        return self._engine.related_rules(rules, context)

    # -------------------------------------------------------------------------
    # Permission checks
    # -------------------------------------------------------------------------

    async def evaluate(self, action: str, resource: str | Sequence[Any]) -> Resolution:
        """
        Resolve the rules for a permission check.

        Args:
            action: The action being checked.
            resource: A resource key, or a ``(resource key, instance)`` pair.

        Returns:
            The Resolution with the verdict and the matching rules.

        Raises:
            ConditionTypeError: If a condition is malformed. This is a rule
                authoring defect, not a denial.
        """
        key, instance, has_instance = _split_resource(resource)
        tags = {"action": action, "resource": key}
        start = time.perf_counter()

        rules = await self._storage.query_rules(action, key)

        if not has_instance:
            resolution = Resolution(
                allowed=self._engine.has_allow_rule(rules),
                matched_allow=[rule for rule in rules if rule.is_allow],
                matched_deny=[rule for rule in rules if rule.is_deny],
                inspected=len(rules),
            )
        else:
            candidates = rules[: self.config.max_rule_iterations + 1]
            context = None
            if any(rule.condition is not None for rule in candidates):
                context = await self.get_context()
            resolution = self._engine.resolve(rules, instance, context)

        if resolution.circuit_breaker_tripped:
            self._metrics.increment("rulegate.circuit_breaker.trips", tags=tags)
        self._metrics.increment("rulegate.decisions", tags={**tags, "allowed": resolution.allowed})
        self._metrics.timing("rulegate.evaluation_ms", (time.perf_counter() - start) * 1000, tags=tags)

        logger.debug(f"Check {action}:{key} (instance={has_instance}) -> allowed={resolution.allowed}")
        return resolution

    async def can(self, action: str, resource: str | Sequence[Any]) -> bool:
        """
        Check whether an action is permitted.

        Without an instance, True if any allow rule exists for the action
        and resource type. With an instance, True if at least one matching
        rule allows and no matching rule denies.

        Example:
            >>> await gate.can("read", "post")
            True
            >>> await gate.can("read", ("post", {"published": False}))
            False
        """
        resolution = await self.evaluate(action, resource)
        return resolution.allowed

    async def cannot(self, action: str, resource: str | Sequence[Any]) -> bool:
        """Inverse of ``can``."""
        return not await self.can(action, resource)

    async def explain(self, action: str, resource: str | Sequence[Any]) -> dict[str, Any]:
        """
        Explain a permission decision.

        Returns:
            Dictionary with the decision, the request, the matching allow
            and deny rules, the number of rules inspected and whether the
            circuit breaker tripped.
        """
        key, _, has_instance = _split_resource(resource)
        resolution = await self.evaluate(action, resource)

        if resolution.circuit_breaker_tripped:
            reason = f"Circuit breaker tripped after {resolution.inspected} rules"
        elif resolution.matched_deny:
            reason = f"{len(resolution.matched_deny)} matching deny rule(s)"
        elif resolution.matched_allow:
            reason = f"{len(resolution.matched_allow)} matching allow rule(s)"
        else:
            reason = "No matching allow rule"

        return {
            "decision": "ALLOW" if resolution.allowed else "DENY",
            "reason": reason,
            "request": {
                "action": action,
                "resource": key,
                "has_instance": has_instance,
            },
            **resolution.to_dict(),
        }

    async def query_filter_for(
        self,
        transformer: Callable[[list[Rule]], T],
        action: str,
        resource: str,
    ) -> T:
        """
        Build a database filter for the records an action may touch.

        Args:
            transformer: Query-filter transformer, e.g. ``rulegate.query_filter.prisma``.
            action: The action.
            resource: The resource type key.
        """
        rules = await self.related_rules_for(action, resource, apply_condition_contextual_operands=True)
        return transformer(rules)


async def create_rulegate(
    rules: Iterable[Any] | RulesCallback | None = None,
    *,
    storage: Storage | None = None,
    get_context: ContextProvider | None = None,
    cache: RuleCache | None = None,
    config: RulegateConfig | None = None,
    metric_hook: MetricHook | None = None,
) -> Rulegate:
    """
    Create a Rulegate instance, optionally loading an initial rule set.

    Example:
        >>> gate = await create_rulegate(
        ...     [{"resource": "post", "action": "read", "condition": None, "effect": "allow"}],
        ...     get_context=fetch_session,
        ... )
    """
    gate = Rulegate(
        storage=storage,
        get_context=get_context,
        cache=cache,
        config=config,
        metric_hook=metric_hook,
    )
    if rules is not None:
        await gate.set_rules(rules)
    return gate
