"""Tests for RuleResolutionEngine."""

from __future__ import annotations

import pytest

from rulegate.caching import InMemoryRuleCache
from rulegate.conditions.parser import parse_rules
from rulegate.engines import DEFAULT_MAX_RULE_ITERATIONS, RuleResolutionEngine
from rulegate.exceptions import ConditionTypeError, ConfigurationError
from rulegate.types import Rule

GENERAL = {"resource": "post", "action": "read", "condition": None, "effect": "allow"}
GENERAL_DENY = {**GENERAL, "effect": "deny"}
PUBLISHED = {"resource": "post", "action": "read", "condition": {"published": ["eq", True]}, "effect": "allow"}
PUBLISHED_DENY = {**PUBLISHED, "effect": "deny"}
UNPUBLISHED_DENY = {**PUBLISHED, "condition": {"published": ["eq", False]}, "effect": "deny"}


def _post(published: bool) -> dict:
    return {"id": 1, "title": "Hello World", "description": "", "tags": [], "published": published}


class TestEngineInit:
    """Test engine initialization."""

    def test_defaults(self):
        engine = RuleResolutionEngine()
        assert engine.name == "resolution"
        assert engine.max_rule_iterations == DEFAULT_MAX_RULE_ITERATIONS == 1000
        assert engine.cache is None

    def test_custom_limit(self):
        engine = RuleResolutionEngine({"max_rule_iterations": 5})
        assert engine.get_config("max_rule_iterations") == 5

    @pytest.mark.parametrize("limit", [0, -1, 1.5, "10", True])
    def test_invalid_limit(self, limit):
        with pytest.raises(ConfigurationError) as exc_info:
            RuleResolutionEngine({"max_rule_iterations": limit})
        assert exc_info.value.config_key == "max_rule_iterations"


class TestOverlappingRules:
    """Test that deny rules veto allow rules regardless of order."""

    @pytest.mark.parametrize(
        "rules, type_level, published, unpublished",
        [
            ([GENERAL, PUBLISHED], True, True, True),
            ([PUBLISHED, GENERAL], True, True, True),
            ([GENERAL, UNPUBLISHED_DENY], True, True, False),
            ([PUBLISHED_DENY, GENERAL], True, False, True),
            ([GENERAL_DENY, UNPUBLISHED_DENY], False, False, False),
            ([UNPUBLISHED_DENY, GENERAL_DENY], False, False, False),
            ([GENERAL_DENY, PUBLISHED], True, False, False),
            ([PUBLISHED, GENERAL_DENY], True, False, False),
        ],
        ids=[
            "general-then-specific",
            "specific-then-general",
            "general-then-specific-deny",
            "specific-deny-then-general",
            "general-deny-then-specific-deny",
            "specific-deny-then-general-deny",
            "general-deny-then-specific",
            "specific-then-general-deny",
        ],
    )
    def test_matrix(self, engine, rules, type_level, published, unpublished):
        parsed = parse_rules(rules)
        assert engine.has_allow_rule(parsed) is type_level
        assert engine.resolve(parsed, _post(True)).allowed is published
        assert engine.resolve(parsed, _post(False)).allowed is unpublished

    def test_no_rules(self, engine):
        assert not engine.has_allow_rule([])
        assert not engine.resolve([], _post(True)).allowed

    def test_matched_rules_reported(self, engine):
        rules = parse_rules([GENERAL, UNPUBLISHED_DENY])
        resolution = engine.resolve(rules, _post(False))
        assert resolution.matched_allow == [rules[0]]
        assert resolution.matched_deny == [rules[1]]
        assert resolution.inspected == 2
        assert not resolution.circuit_breaker_tripped


class TestCircuitBreaker:
    """Test the iteration ceiling."""

    def _rules(self, count: int) -> list[Rule]:
        return [Rule(resource="post", action="read") for _ in range(count)]

    def test_at_limit(self, engine):
        resolution = engine.resolve(self._rules(1000), _post(True))
        assert resolution.allowed
        assert not resolution.circuit_breaker_tripped

    def test_over_limit(self, engine):
        resolution = engine.resolve(self._rules(1001), _post(True))
        assert not resolution.allowed
        assert resolution.circuit_breaker_tripped
        assert resolution.inspected == 1000

    def test_custom_limit(self):
        engine = RuleResolutionEngine({"max_rule_iterations": 2})
        assert engine.resolve(self._rules(2), _post(True)).allowed
        assert not engine.resolve(self._rules(3), _post(True)).allowed


class TestContextualResolution:
    """Test resolution with contextual operands."""

    def test_owner_rule(self, engine, post_rules, user_context):
        update_rules = [rule for rule in post_rules if rule.action == "update"]
        assert engine.resolve(update_rules, {"authorId": 1}, user_context).allowed
        assert not engine.resolve(update_rules, {"authorId": 2}, user_context).allowed
        assert not engine.resolve(update_rules, {"authorId": 1}, {"userId": None}).allowed

    def test_related_rules_substitute_operands(self, engine, post_rules, user_context):
        related = engine.related_rules([post_rules[2]], user_context)
        assert related[0].condition.to_raw() == {"authorId": ["eq", 1]}
        assert related[0].effect is post_rules[2].effect

    def test_substitutions_are_cached(self, post_rules, user_context):
        cache = InMemoryRuleCache()
        engine = RuleResolutionEngine(cache=cache)
        rule = post_rules[2]

        first = engine.condition_for(rule, user_context)
        second = engine.condition_for(rule, dict(user_context))
        assert first is second
        assert cache.get_stats().hits == 1

        other = engine.condition_for(rule, {"userId": 2})
        assert other.to_raw() == {"authorId": ["eq", 2]}
        assert len(cache) == 2

    def test_cache_does_not_change_decisions(self, post_rules, user_context):
        cached = RuleResolutionEngine(cache=InMemoryRuleCache())
        uncached = RuleResolutionEngine()
        for instance in ({"authorId": 1}, {"authorId": 2}, {}):
            assert (
                cached.resolve(post_rules[2:3], instance, user_context).allowed
                == uncached.resolve(post_rules[2:3], instance, user_context).allowed
            )

    def test_cache_key_ignores_unreferenced_context(self, post_rules):
        cache = InMemoryRuleCache()
        engine = RuleResolutionEngine(cache=cache)
        rule = post_rules[2]

        engine.condition_for(rule, {"userId": 1, "name": "john"})
        engine.condition_for(rule, {"userId": 1, "name": "jane", 7: "x"})
        assert cache.get_stats().hits == 1
        assert len(cache) == 1

    def test_conditions_without_context_operands_skip_cache(self, post_rules, user_context):
        cache = InMemoryRuleCache()
        engine = RuleResolutionEngine(cache=cache)
        rule = post_rules[1]

        assert engine.condition_for(rule, user_context) is rule.condition
        assert len(cache) == 0

    def test_opaque_context_values_are_not_cached(self):
        class Session:
            def __str__(self):
                return "session"

        cache = InMemoryRuleCache()
        engine = RuleResolutionEngine(cache=cache)
        rule = parse_rules([
            {"resource": "post", "action": "read", "condition": {"session": ["eq", "$ctx.session"]}, "effect": "allow"},
        ])[0]
        session = Session()

        condition = engine.condition_for(rule, {"session": session})
        assert condition.to_raw() == {"session": ["eq", session]}
        assert len(cache) == 0

    def test_malformed_condition_propagates(self, engine):
        rules = parse_rules([{**GENERAL, "condition": {"published": True}}])
        with pytest.raises(ConditionTypeError):
            engine.resolve(rules, _post(True))
