"""
Rulegate: attribute- and relationship-based access control rules.

Rulegate decides whether an action on a resource is permitted by
evaluating allow/deny rules. Rules may carry conditions over the resource
instance, and conditions may refer to a per-request context.

Basic Usage:
    >>> from rulegate import create_rulegate
    >>>
    >>> async def get_context():
    ...     return {"user": {"id": 42, "roles": ["editor"]}}
    >>>
    >>> gate = await create_rulegate(get_context=get_context)
    >>> await gate.set_rules(lambda allow, deny: (
    ...     allow("read", ("post", {"published": ["eq", True]})),
    ...     allow("edit", ("post", {"authorId": ["eq", "$ctx.user.id"]})),
    ...     deny("edit", ("post", {"locked": ["eq", True]})),
    ... ))
    >>>
    >>> await gate.can("edit", ("post", {"authorId": 42, "locked": False}))
    True
    >>> await gate.cannot("edit", ("post", {"authorId": 42, "locked": True}))
    True

Condition expressions are ``[operator, operand, options?]`` lists. The
operators are eq, in, contains, startsWith, endsWith, gt, gte, has,
hasSome, hasEvery, some, every and none.
"""

__version__ = "0.1.0"

# Main Rulegate class
from rulegate.core import (
    Rulegate,
    RulegateConfig,
    create_rulegate,
)

# Caching
from rulegate.caching import (
    InMemoryRuleCache,
    RuleCache,
)

# Condition evaluation
from rulegate.conditions import (
    apply_contextual_operands,
    match_condition,
    match_expression,
    parse_condition,
    parse_rule,
    parse_rules,
)

# Engines
from rulegate.engines import RuleResolutionEngine

# Exceptions
from rulegate.exceptions import (
    ConditionTypeError,
    ConfigurationError,
    RulegateError,
    RuleValidationError,
    UncacheableValueError,
    UnsupportedOperatorError,
)

# Observability
from rulegate.observability import (
    InMemoryMetricHook,
    LoggingMetricHook,
    MetricHook,
    NoOpMetricHook,
)

# Query filters
from rulegate.query_filter import prisma

# Storage
from rulegate.storage import (
    InMemoryStorage,
    Storage,
)

# Types
from rulegate.types import (
    Condition,
    Effect,
    Expression,
    Operator,
    Resolution,
    Rule,
)

# Validation
from rulegate.validation import load_rules

__all__ = [
    # Version
    "__version__",
    # Core
    "Rulegate",
    "RulegateConfig",
    "create_rulegate",
    # Types
    "Rule",
    "Effect",
    "Operator",
    "Condition",
    "Expression",
    "Resolution",
    # Conditions
    "match_condition",
    "match_expression",
    "apply_contextual_operands",
    "parse_condition",
    "parse_rule",
    "parse_rules",
    # Engines
    "RuleResolutionEngine",
    # Storage and caching
    "Storage",
    "InMemoryStorage",
    "RuleCache",
    "InMemoryRuleCache",
    # Query filters
    "prisma",
    # Validation
    "load_rules",
    # Observability
    "MetricHook",
    "NoOpMetricHook",
    "LoggingMetricHook",
    "InMemoryMetricHook",
    # Exceptions
    "RulegateError",
    "ConditionTypeError",
    "RuleValidationError",
    "ConfigurationError",
    "UnsupportedOperatorError",
    "UncacheableValueError",
]
