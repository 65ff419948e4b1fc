"""
Translation of raw rule data into the typed condition model.

Raw conditions are the nested lists and dicts found in stored rules::

    {"roles": {"length": ["eq", 2], "$expr": ["some", {"name": ["eq", "$ctx.role"]}]}}

Parsing decides once, at load time, whether each entry is an expression or
a nested condition and whether each operand is a literal or a context
reference. It does not check operand types: those are checked when the
expression is evaluated, so a rule with a bad operand still loads and fails
loudly only when it is actually used.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from rulegate.conditions.resolver import is_contextual_operand
from rulegate.exceptions import ConditionTypeError
from rulegate.types import (
    Clause,
    Condition,
    ContextOperand,
    Effect,
    Expression,
    ExpressionOptions,
    InvalidClause,
    LiteralOperand,
    NestedCondition,
    Operand,
    Operator,
    Rule,
)

logger = logging.getLogger(__name__)

EXPR_KEY = "$expr"


def is_valid_condition_expression(raw: Any) -> bool:
    """
    Check the shape of a raw condition expression.

    A valid expression is a list or tuple with at least two elements whose
    first element is the operator name.
    """
    return isinstance(raw, (list, tuple)) and len(raw) >= 2 and isinstance(raw[0], str)


def is_well_formed_condition(raw: Any) -> bool:
    """Check that every entry of a raw condition is an expression or a mapping."""
    return isinstance(raw, Mapping) and all(
        is_valid_condition_expression(value) or isinstance(value, Mapping)
        for value in raw.values()
    )


def parse_options(raw: Any) -> ExpressionOptions | None:
    if not isinstance(raw, Mapping):
        return None
    case_insensitive = raw.get("caseInsensitive", raw.get("case_insensitive", False))
    return ExpressionOptions(case_insensitive=bool(case_insensitive))


def parse_operand(operator: Operator | None, raw: Any) -> Operand:
    """
    Parse an operand.

    Context references become ``ContextOperand``. Quantifier operands that
    are well-formed conditions become ``Condition``; anything else is kept
    as a literal and left to the operator to reject.
    """
    if isinstance(raw, (Condition, LiteralOperand, ContextOperand)):
        return raw
    if is_contextual_operand(raw):
        return ContextOperand(raw)
    if operator is not None and operator.is_quantifier and is_well_formed_condition(raw):
        return parse_condition(raw)
    return LiteralOperand(raw)


def parse_expression(raw: Any) -> Expression | None:
    """
    Parse a raw ``[operator, operand, options?]`` expression.

    Returns:
        The parsed expression, or None if the shape is malformed.
    """
    if isinstance(raw, Expression):
        return raw
    if not is_valid_condition_expression(raw):
        return None

    name = raw[0]
    operator = Operator.from_name(name)
    if operator is None:
        logger.debug(f"Unknown operator '{name}' will evaluate to False")

    return Expression(
        name=name,
        operator=operator,
        operand=parse_operand(operator, raw[1]),
        options=parse_options(raw[2]) if len(raw) > 2 else None,
    )


def parse_clause(raw: Any) -> Clause:
    if isinstance(raw, (Expression, NestedCondition, InvalidClause)):
        return raw

    expression = parse_expression(raw)
    if expression is not None:
        return expression

    if isinstance(raw, Mapping):
        rest = {key: value for key, value in raw.items() if key != EXPR_KEY}
        expr = None
        if EXPR_KEY in raw:
            expr = parse_expression(raw[EXPR_KEY])
            if expr is None:
                return InvalidClause(raw)
        return NestedCondition(condition=parse_condition(rest), expr=expr)

    return InvalidClause(raw)


def parse_condition(raw: Any) -> Condition:
    """
    Parse a raw condition mapping.

    Args:
        raw: Mapping of field path to expression or nested condition.

    Returns:
        The typed condition. Entries of the wrong shape become
        ``InvalidClause`` and raise when evaluated.

    Raises:
        ConditionTypeError: If ``raw`` is not a mapping.

    Example:
        >>> condition = parse_condition({"ownerId": ["eq", "$ctx.userId"]})
        >>> condition.to_raw()
        {'ownerId': ['eq', '$ctx.userId']}
    """
    if isinstance(raw, Condition):
        return raw
    if not isinstance(raw, Mapping):
        raise ConditionTypeError(
            "A condition must be a mapping of field names to expressions",
            expected="mapping",
            received=type(raw).__name__,
        )
    return Condition(tuple((str(key), parse_clause(value)) for key, value in raw.items()))


def parse_rule(data: Any) -> Rule:
    """
    Validate and parse a raw rule mapping.

    Accepts ``effect: "allow" | "deny"`` or, for rules written in the earlier
    shape, ``inverted: bool``. One of the two is required.

    Raises:
        RuleValidationError: If the rule document is structurally invalid.
    """
    if isinstance(data, Rule):
        return data

    from rulegate.validation.rule_schema import validate_rule_document

    document = validate_rule_document(data)
    condition = parse_condition(document.condition) if document.condition is not None else None

    return Rule(
        resource=document.resource,
        action=document.action,
        condition=condition,
        effect=Effect(document.effect),
    )


def parse_rules(rules: Any) -> list[Rule]:
    """Parse a sequence of raw rules or Rule objects."""
    return [parse_rule(rule) for rule in rules]
