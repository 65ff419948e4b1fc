"""
Condition matching.

``match_expression`` evaluates one condition expression against one value;
``match_condition`` walks a condition tree against a resource instance and
combines the per-field results with logical AND.

Both accept either the typed model from ``rulegate.types`` or raw rule data,
which is parsed on the way in.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from rulegate.conditions.operators import apply_operator, is_array, is_object
from rulegate.conditions.parser import (
    is_well_formed_condition,
    parse_condition,
    parse_expression,
)
from rulegate.conditions.resolver import get_context_value, get_resource_value
from rulegate.exceptions import ConditionTypeError
from rulegate.types import (
    Clause,
    Condition,
    ContextOperand,
    Expression,
    InvalidClause,
    LiteralOperand,
    NestedCondition,
    Operand,
)

logger = logging.getLogger(__name__)


def resolve_operand(operand: Operand, context: Mapping[str, Any] | None) -> Any:
    """Turn an operand into the value an operator compares against."""
    if isinstance(operand, ContextOperand):
        return get_context_value(context, operand.path)
    if isinstance(operand, LiteralOperand):
        return operand.value
    return operand


def match_expression(
    value: Any,
    expression: Any,
    context: Mapping[str, Any] | None = None,
) -> bool:
    """
    Evaluate a condition expression against a value.

    Args:
        value: The resolved resource value.
        expression: ``[operator, operand, options?]`` or a parsed Expression.
        context: Context used to resolve contextual operands.

    Returns:
        The operator's verdict. Malformed expressions and unknown operators
        evaluate to False.

    Raises:
        ConditionTypeError: If the value or operand type does not suit the
            operator.

    Example:
        >>> match_expression("Admin", ["eq", "admin", {"caseInsensitive": True}])
        True
        >>> match_expression([], ["every", {"x": ["eq", 1]}])
        False
        >>> match_expression([], ["none", {"x": ["eq", 1]}])
        True
    """
    parsed = parse_expression(expression)
    if parsed is None:
        return False
    if parsed.operator is None:
        logger.debug(f"Unknown operator '{parsed.name}', expression evaluates to False")
        return False

    operand = resolve_operand(parsed.operand, context)
    return apply_operator(parsed.operator, value, operand, parsed.options, context)


def _match_clause(instance: Any, key: str, clause: Clause, context: Mapping[str, Any] | None) -> bool:
    if isinstance(clause, Expression):
        return match_expression(get_resource_value(instance, key), clause, context)

    if isinstance(clause, NestedCondition):
        value = get_resource_value(instance, key)
        if not (is_object(value) or is_array(value)):
            return False
        if clause.expr is not None and not match_expression(value, clause.expr, context):
            return False
        return match_condition(value, clause.condition, context)

    raise ConditionTypeError(
        f"Invalid condition for field '{key}': expected a condition expression "
        f"or a nested condition, got {type(clause.raw).__name__}",
        expected="[operator, operand, options?] or mapping",
        received=type(clause.raw).__name__,
    )


def match_condition(
    instance: Any,
    condition: Any,
    context: Mapping[str, Any] | None = None,
) -> bool:
    """
    Evaluate a condition tree against a resource instance.

    Every field must match. An empty condition matches any existing
    instance; a missing instance matches nothing.

    Args:
        instance: The resource instance (mapping or object).
        condition: Raw condition mapping or a parsed Condition.
        context: Context used to resolve contextual operands.

    Raises:
        ConditionTypeError: On malformed condition entries or operator type
            mismatches.

    Example:
        >>> match_condition(
        ...     {"ownerId": "u1"},
        ...     {"ownerId": ["eq", "$ctx.userId"]},
        ...     {"userId": "u1"},
        ... )
        True
    """
    if instance is None:
        return False

    parsed = parse_condition(condition)
    return all(_match_clause(instance, key, clause, context) for key, clause in parsed.items())


def _substitute_expression(expression: Expression, context: Mapping[str, Any] | None) -> Expression:
    operand = expression.operand

    if isinstance(operand, ContextOperand):
        resolved = get_context_value(context, operand.path)
        quantifier = expression.operator is not None and expression.operator.is_quantifier
        if quantifier and is_well_formed_condition(resolved):
            operand = parse_condition(resolved)
        else:
            operand = LiteralOperand(resolved)
    elif isinstance(operand, Condition):
        operand = apply_contextual_operands(operand, context)

    return Expression(
        name=expression.name,
        operator=expression.operator,
        operand=operand,
        options=expression.options,
    )


def _substitute_clause(clause: Clause, context: Mapping[str, Any] | None) -> Clause:
    if isinstance(clause, Expression):
        return _substitute_expression(clause, context)
    if isinstance(clause, NestedCondition):
        return NestedCondition(
            condition=apply_contextual_operands(clause.condition, context),
            expr=_substitute_expression(clause.expr, context) if clause.expr else None,
        )
    return clause


def apply_contextual_operands(condition: Any, context: Mapping[str, Any] | None) -> Condition:
    """
    Replace every contextual operand in a condition with its context value.

    The result contains only literal operands, so it can be matched or
    projected into a query filter without the context.

    Example:
        >>> apply_contextual_operands(
        ...     {"name": ["eq", "$ctx.name", {"caseInsensitive": True}]},
        ...     {"name": "john doe"},
        ... ).to_raw()
        {'name': ['eq', 'john doe', {'caseInsensitive': True}]}
    """
    parsed = parse_condition(condition)
    return Condition(tuple((key, _substitute_clause(clause, context)) for key, clause in parsed.items()))


def _expression_references(expression: Expression) -> list[str]:
    if isinstance(expression.operand, ContextOperand):
        return [expression.operand.path]
    if isinstance(expression.operand, Condition):
        return context_references(expression.operand)
    return []


def context_references(condition: Any) -> list[str]:
    """
    List the context paths a condition refers to, in tree order.

    Substituting contextual operands depends on the context only through
    the values at these paths.

    Example:
        >>> context_references({"ownerId": ["eq", "$ctx.userId"], "team": {"id": ["in", "ctx.teams"]}})
        ['$ctx.userId', 'ctx.teams']
    """
    references: list[str] = []
    for _, clause in parse_condition(condition).items():
        if isinstance(clause, Expression):
            references.extend(_expression_references(clause))
        elif isinstance(clause, NestedCondition):
            references.extend(context_references(clause.condition))
            if clause.expr is not None:
                references.extend(_expression_references(clause.expr))
    return references


def has_contextual_operands(condition: Any) -> bool:
    """Check whether a condition refers to the context anywhere."""
    return bool(context_references(condition))
