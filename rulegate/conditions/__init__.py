"""
Condition evaluation for Rulegate.

Example:
    >>> from rulegate.conditions import match_condition, match_expression
    >>>
    >>> match_expression("hello world", ["startsWith", "HELLO", {"caseInsensitive": True}])
    True
    >>> match_condition(
    ...     {"roles": [{"name": "admin"}, {"name": "User"}]},
    ...     {"roles": {"length": ["eq", 2],
    ...                "$expr": ["some", {"name": ["eq", "user", {"caseInsensitive": True}]}]}},
    ... )
    True
"""

from rulegate.conditions.matcher import (
    apply_contextual_operands,
    context_references,
    has_contextual_operands,
    match_condition,
    match_expression,
    resolve_operand,
)
from rulegate.conditions.operators import (
    OPERATORS,
    apply_operator,
    strict_equals,
    validate_operand_type,
    validate_value_type,
)
from rulegate.conditions.parser import (
    is_valid_condition_expression,
    parse_condition,
    parse_expression,
    parse_rule,
    parse_rules,
)
from rulegate.conditions.resolver import (
    CONTEXT_PREFIXES,
    get_context_value,
    get_resource_value,
    is_contextual_operand,
    resolve_path,
)

__all__ = [
    # Matching
    "match_condition",
    "match_expression",
    "apply_contextual_operands",
    "context_references",
    "has_contextual_operands",
    "resolve_operand",
    # Operators
    "OPERATORS",
    "apply_operator",
    "strict_equals",
    "validate_value_type",
    "validate_operand_type",
    # Parsing
    "parse_condition",
    "parse_expression",
    "parse_rule",
    "parse_rules",
    "is_valid_condition_expression",
    # Value resolution
    "CONTEXT_PREFIXES",
    "resolve_path",
    "get_resource_value",
    "get_context_value",
    "is_contextual_operand",
]
