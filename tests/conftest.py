"""
Pytest fixtures for Rulegate tests.

Provides common fixtures used across all test modules.
"""

from __future__ import annotations

from typing import Any

import pytest

from rulegate import InMemoryMetricHook, InMemoryStorage, Rulegate, RulegateConfig
from rulegate.caching import InMemoryRuleCache
from rulegate.conditions.parser import parse_rules
from rulegate.engines import RuleResolutionEngine
from rulegate.types import Rule


# ============================================================================
# Resource Fixtures
# ============================================================================


@pytest.fixture
def published_post() -> dict[str, Any]:
    """A published post owned by user 1."""
    return {
        "id": 1,
        "title": "Release Notes",
        "published": True,
        "authorId": 1,
        "tags": ["news", "Release"],
        "archived": False,
    }


@pytest.fixture
def draft_post() -> dict[str, Any]:
    """An unpublished post owned by user 2."""
    return {
        "id": 2,
        "title": "Draft",
        "published": False,
        "authorId": 2,
        "tags": [],
        "archived": False,
    }


@pytest.fixture
def user_with_roles() -> dict[str, Any]:
    """A user resource with nested role objects."""
    return {
        "id": 7,
        "name": "John Doe",
        "email": "john@example.com",
        "address": None,
        "roles": [
            {"name": "admin", "scope": "global"},
            {"name": "User", "scope": "team"},
        ],
    }


@pytest.fixture
def user_context() -> dict[str, Any]:
    """Context for an authenticated user."""
    return {
        "userId": 1,
        "name": "john doe",
        "user": {"id": 1, "roles": ["editor"], "address": None},
    }


# ============================================================================
# Rule Fixtures
# ============================================================================


@pytest.fixture
def post_rules() -> list[Rule]:
    """Typical rules for a blog post resource."""
    return parse_rules([
        {"resource": "post", "action": "read", "condition": None, "effect": "allow"},
        {
            "resource": "post",
            "action": "read",
            "condition": {"published": ["eq", False]},
            "effect": "deny",
        },
        {
            "resource": "post",
            "action": "update",
            "condition": {"authorId": ["eq", "$ctx.userId"]},
            "effect": "allow",
        },
        {
            "resource": "post",
            "action": "delete",
            "condition": {"archived": ["eq", True]},
            "effect": "deny",
        },
    ])


# ============================================================================
# Component Fixtures
# ============================================================================


@pytest.fixture
def engine() -> RuleResolutionEngine:
    """A resolution engine without a cache."""
    return RuleResolutionEngine()


@pytest.fixture
def rule_cache() -> InMemoryRuleCache:
    """An empty in-memory cache."""
    return InMemoryRuleCache()


@pytest.fixture
def storage() -> InMemoryStorage:
    """An empty in-memory storage with its own cache."""
    return InMemoryStorage()


@pytest.fixture
def metric_hook() -> InMemoryMetricHook:
    """An in-memory metric hook."""
    return InMemoryMetricHook()


@pytest.fixture
def gate(storage: InMemoryStorage, user_context: dict[str, Any], metric_hook: InMemoryMetricHook) -> Rulegate:
    """A Rulegate over in-memory storage with a synchronous context provider."""
    return Rulegate(
        storage=storage,
        get_context=lambda: user_context,
        config=RulegateConfig(),
        metric_hook=metric_hook,
    )
