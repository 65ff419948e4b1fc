"""
Rule resolution for Rulegate.

Combines the candidate rules for one action and resource type into a single
verdict:

1. A rule without a condition always matches; a rule with a condition
   matches if the condition holds for the resource instance.
2. The verdict is allow if at least one allow rule matched and no deny rule
   matched. A single matching deny rule vetoes any number of allow rules,
   whatever their order.
3. More candidates than ``max_rule_iterations`` trip the circuit breaker and
   force a deny.

Without a resource instance, only the existence of an allow rule for the
action and resource type is checked.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from rulegate.caching import CACHE_MISS, RuleCache, make_cache_key
from rulegate.conditions.matcher import apply_contextual_operands, context_references, match_condition
from rulegate.conditions.resolver import get_context_value
from rulegate.exceptions import ConfigurationError, UncacheableValueError
from rulegate.types import Condition, Resolution, Rule

logger = logging.getLogger(__name__)

DEFAULT_MAX_RULE_ITERATIONS = 1000

_SUBSTITUTION_NAMESPACE = "ctx-operands"


class RuleResolutionEngine:
    """
    Pure, synchronous resolution of candidate rules.

    The engine holds no rule state; the caller supplies the candidate rules
    for each request. The optional cache only stores conditions with their
    contextual operands substituted, so results are the same without it.

    Configuration:
        - max_rule_iterations: Circuit breaker ceiling on the number of
          candidate rules inspected per request. Defaults to 1000.

    Example:
        >>> engine = RuleResolutionEngine()
        >>> rules = parse_rules([
        ...     {"resource": "post", "action": "read", "condition": None, "effect": "allow"},
        ...     {"resource": "post", "action": "read",
        ...      "condition": {"published": ["eq", False]}, "effect": "deny"},
        ... ])
        >>> engine.resolve(rules, {"published": True}).allowed
        True
        >>> engine.resolve(rules, {"published": False}).allowed
        False
    """

    name = "resolution"

    def __init__(
        self,
        config: dict[str, Any] | None = None,
        cache: RuleCache | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Engine configuration options.
            cache: Optional cache for substituted conditions.

        Raises:
            ConfigurationError: If max_rule_iterations is not a positive integer.
        """
        self.config = config or {}
        self.cache = cache
        self.max_rule_iterations = self.get_config("max_rule_iterations", DEFAULT_MAX_RULE_ITERATIONS)

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

    def get_config(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self.config.get(key, default)

    @staticmethod
    def has_allow_rule(rules: Sequence[Rule]) -> bool:
        """Decision without an instance: does any allow rule exist?"""
        return any(rule.is_allow for rule in rules)

    def condition_for(self, rule: Rule, context: Mapping[str, Any] | None) -> Condition | None:
        """
        Get a rule's condition with contextual operands substituted.

        Substitutions are cached per condition and the context values it
        refers to. Conditions without contextual operands are returned as is;
        values without a structural encoding bypass the cache.
        """
        if rule.condition is None:
            return None

        references = context_references(rule.condition)
        if not references:
            return rule.condition
        if self.cache is None:
            return apply_contextual_operands(rule.condition, context)

        values = [[path, get_context_value(context, path)] for path in references]
        try:
            key = make_cache_key(_SUBSTITUTION_NAMESPACE, rule.condition.to_raw(), values)
        except UncacheableValueError as e:
            logger.debug(f"Substitution not cached: {e}")
            return apply_contextual_operands(rule.condition, context)

        cached = self.cache.get(key, CACHE_MISS)
        if cached is not CACHE_MISS:
            return cached

        condition = apply_contextual_operands(rule.condition, context)
        self.cache.set(key, condition)
        return condition

    def rule_matches(self, rule: Rule, instance: Any, context: Mapping[str, Any] | None = None) -> bool:
        """Check whether a single rule applies to a resource instance."""
        condition = self.condition_for(rule, context)
        if condition is None:
            return True
        return match_condition(instance, condition, context)

    def related_rules(
        self,
        rules: Sequence[Rule],
        context: Mapping[str, Any] | None,
    ) -> list[Rule]:
        """Return ``rules`` with contextual operands substituted in their conditions."""
        return [
            Rule(
                resource=rule.resource,
                action=rule.action,
                condition=self.condition_for(rule, context),
                effect=rule.effect,
            )
            for rule in rules
        ]

    def resolve(
        self,
        rules: Sequence[Rule],
        instance: Any,
        context: Mapping[str, Any] | None = None,
    ) -> Resolution:
        """
        Resolve candidate rules against a resource instance.

        Args:
            rules: Candidate rules for the action and resource type.
            instance: The resource instance.
            context: Context for contextual operands.

        Returns:
            The Resolution, including which rules matched.

        Raises:
            ConditionTypeError: If a condition is malformed. Authoring defects
                propagate; they are not turned into a deny.
        """
        matched_allow: list[Rule] = []
        matched_deny: list[Rule] = []
        inspected = 0

        for rule in rules:
            inspected += 1
            if inspected > self.max_rule_iterations:
                logger.warning(
                    f"Circuit breaker tripped: more than {self.max_rule_iterations} "
                    f"candidate rules for {rule.action}:{rule.resource}"
                )
                return Resolution(
                    allowed=False,
                    matched_allow=matched_allow,
                    matched_deny=matched_deny,
                    inspected=inspected - 1,
                    circuit_breaker_tripped=True,
                )

            if not self.rule_matches(rule, instance, context):
                continue
            if rule.is_deny:
                matched_deny.append(rule)
            else:
                matched_allow.append(rule)

        allowed = bool(matched_allow) and not matched_deny

        logger.debug(
            f"Resolved {inspected} rules: allowed={allowed}, "
            f"matched_allow={len(matched_allow)}, matched_deny={len(matched_deny)}"
        )

        return Resolution(
            allowed=allowed,
            matched_allow=matched_allow,
            matched_deny=matched_deny,
            inspected=inspected,
        )
