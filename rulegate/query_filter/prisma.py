"""
Prisma query-filter transformer.

Projects rule conditions into Prisma ``where`` objects, so a list query
returns only the records the rules allow:

    >>> rules = await gate.related_rules_for(
    ...     "read", "post", apply_condition_contextual_operands=True
    ... )
    >>> prisma(rules)
    {'OR': [{'authorId': {'equals': 1}}], 'AND': [{'NOT': {'published': {'equals': False}}}]}

Contextual operands must be substituted before transforming; this module
does not read the context.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from rulegate.conditions.operators import strict_equals
from rulegate.conditions.parser import parse_condition
from rulegate.exceptions import UnsupportedOperatorError
from rulegate.types import (
    Condition,
    ContextOperand,
    Expression,
    InvalidClause,
    NestedCondition,
    Operator,
    Rule,
)

_TRANSFORMER = "prisma"

# Operators projected onto the Prisma filter of the same meaning
_FIELD_FILTERS = {
    Operator.EQ: "equals",
    Operator.IN: "in",
    Operator.CONTAINS: "contains",
    Operator.STARTS_WITH: "startsWith",
    Operator.ENDS_WITH: "endsWith",
    Operator.GT: "gt",
    Operator.GTE: "gte",
    Operator.HAS: "has",
    Operator.HAS_SOME: "hasSome",
    Operator.HAS_EVERY: "hasEvery",
}

_RELATION_FILTERS = {
    Operator.SOME: "some",
    Operator.EVERY: "every",
    Operator.NONE: "none",
}


def _operand_value(expression: Expression) -> Any:
    operand = expression.operand
    if isinstance(operand, ContextOperand):
        raise ValueError(
            f"Contextual operand '{operand.path}' must be substituted before "
            f"building a {_TRANSFORMER} filter"
        )
    if isinstance(operand, Condition):
        return to_prisma_where(operand)
    return operand.value


def _expression_filter(expression: Expression) -> dict[str, Any]:
    operator = expression.operator
    if operator in _RELATION_FILTERS:
        return {_RELATION_FILTERS[operator]: _operand_value(expression)}

    if operator not in _FIELD_FILTERS:
        raise UnsupportedOperatorError(expression.name, _TRANSFORMER)

    clause = {_FIELD_FILTERS[operator]: _operand_value(expression)}
    if expression.case_insensitive:
        clause["mode"] = "insensitive"
    return clause


def _length_filter(nested: NestedCondition) -> dict[str, Any]:
    length = dict(nested.condition.items())["length"]
    is_empty = (
        isinstance(length, Expression)
        and length.operator is Operator.EQ
        and strict_equals(_operand_value(length), 0)
    )
    clause: dict[str, Any] = {"none": {}} if is_empty else {"some": {}}
    if nested.expr is not None:
        extra = _expression_filter(nested.expr)
        if is_empty and "none" in extra:
            # An empty relation satisfies any none filter
            extra.pop("none")
        elif not is_empty and "some" in extra:
            # A some filter already requires a non-empty relation
            clause.pop("some")
        _merge_filters(clause, extra)
    return clause


def _merge_filters(target: dict[str, Any], extra: dict[str, Any]) -> None:
    overlap = set(target) & set(extra)
    if overlap:
        raise ValueError(f"Conflicting {_TRANSFORMER} filters for {sorted(overlap)}")
    target.update(extra)


def to_prisma_where(condition: Any) -> dict[str, Any]:
    """
    Convert a condition into a Prisma where clause.

    Args:
        condition: Raw condition mapping or parsed Condition.

    Returns:
        The where clause.

    Raises:
        UnsupportedOperatorError: For operators without a Prisma equivalent, and
            for ``length`` combined with other fields of the same nested condition.
        ValueError: For unsubstituted contextual operands, invalid entries, or
            a nested condition whose filters collide with its ``$expr`` filter.

    Example:
        >>> to_prisma_where({"title": ["startsWith", "news", {"caseInsensitive": True}]})
        {'title': {'startsWith': 'news', 'mode': 'insensitive'}}
    """
    clause: dict[str, Any] = {}

    for key, entry in parse_condition(condition).items():
        if isinstance(entry, Expression):
            clause[key] = _expression_filter(entry)
        elif isinstance(entry, NestedCondition):
            keys = {field for field, _ in entry.condition.items()}
            if "length" in keys:
                if len(keys) > 1:
                    raise UnsupportedOperatorError("length", _TRANSFORMER)
                clause[key] = _length_filter(entry)
                continue

            nested = to_prisma_where(entry.condition)
            if entry.expr is not None:
                _merge_filters(nested, _expression_filter(entry.expr))
            clause[key] = nested
        elif isinstance(entry, InvalidClause):
            raise ValueError(f"Invalid condition for field '{key}': {entry.raw!r}")

    return clause


def prisma(rules: Iterable[Rule]) -> dict[str, list[dict[str, Any]]]:
    """
    Build a Prisma where object from a set of rules.

    Allow conditions are combined with OR; each deny condition is added to
    AND as a NOT clause. Rules without a condition add no filter.
    """
    query: dict[str, list[dict[str, Any]]] = {}

    for rule in rules:
        if rule.condition is None:
            continue
        if rule.is_deny:
            query.setdefault("AND", []).append({"NOT": to_prisma_where(rule.condition)})
        else:
            query.setdefault("OR", []).append(to_prisma_where(rule.condition))

    return query
