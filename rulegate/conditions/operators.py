"""
Condition operators.

Each operator function takes the resolved resource value, the resolved
operand, the expression options and the evaluation context, and returns a
boolean. Every operator validates its inputs first:

- A resource value of the wrong type raises ``ConditionTypeError``, except
  None, which always passes and produces the operator's defined result
  for absent data.
- An operand of the wrong type always raises ``ConditionTypeError``, since
  the operand comes from the rule rather than from the data.

Type names used in error messages follow the rule data vocabulary:
null, string, number, boolean, array, object.
"""

from __future__ import annotations

import numbers
from collections.abc import Callable, Mapping
from typing import Any

from rulegate.exceptions import ConditionTypeError
from rulegate.types import Condition, ExpressionOptions, Operator

OperatorFunction = Callable[[Any, Any, "ExpressionOptions | None", "Mapping[str, Any] | None"], bool]

_PRIMITIVES = (str, bytes, bool, numbers.Number)


# ---------------------------------------------------------------------------
# Type helpers
# ---------------------------------------------------------------------------


def is_number(value: Any) -> bool:
    """Check for a number, excluding booleans."""
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def is_scalar(value: Any) -> bool:
    return isinstance(value, (str, bool)) or is_number(value)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_object(value: Any) -> bool:
    """Check for a mapping or any other non-primitive, non-sequence object."""
    if isinstance(value, Mapping):
        return True
    return value is not None and not isinstance(value, _PRIMITIVES) and not is_array(value)


def type_name(value: Any) -> str:
    """Name of a value's type in rule data vocabulary."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if is_array(value):
        return "array"
    return "object"


def _is_array_of_scalars(value: Any) -> bool:
    return is_array(value) and all(isinstance(item, str) or is_number(item) for item in value)


def _is_array_of_objects(value: Any) -> bool:
    return is_array(value) and all(is_object(item) for item in value)


def validate_value_type(
    value: Any,
    allowed_types: tuple[str, ...],
    operator: str,
    validator: Callable[[Any], bool] | None = None,
) -> None:
    """
    Validate a resource value against an operator's accepted types.

    None always passes. Otherwise the value's type name must be one of
    ``allowed_types`` and, if given, ``validator`` must accept the value.

    Raises:
        ConditionTypeError: On a type mismatch.
    """
    if value is None:
        return
    if type_name(value) in allowed_types and (validator is None or validator(value)):
        return
    raise ConditionTypeError(
        f"Unexpected resource value type while evaluating condition with {operator} "
        f"operator. (expected: {', '.join(allowed_types)}; received: {type_name(value)})",
        operator=operator,
        expected=", ".join(allowed_types),
        received=type_name(value),
    )


def validate_operand_type(
    operand: Any,
    allowed_types: tuple[str, ...],
    operator: str,
    validator: Callable[[Any], bool] | None = None,
    expected: str | None = None,
) -> None:
    """
    Validate an operand against an operator's accepted types.

    Unlike resource values, a None operand is only accepted when "null" is
    one of the allowed types.

    Raises:
        ConditionTypeError: On a type mismatch.
    """
    if type_name(operand) in allowed_types and (validator is None or validator(operand)):
        return
    expected = expected or ", ".join(allowed_types)
    raise ConditionTypeError(
        f"The operand for condition with {operator} operator must be one of the "
        f"following types: {expected}. (received: {type_name(operand)})",
        operator=operator,
        expected=expected,
        received=type_name(operand),
    )


# ---------------------------------------------------------------------------
# Comparison helpers
# ---------------------------------------------------------------------------


def strict_equals(left: Any, right: Any) -> bool:
    """
    Equality that never crosses type families.

    ``True`` does not equal ``1`` and ``"1"`` does not equal ``1``;
    ``1`` equals ``1.0``.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_number(left) and is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return left is None and right is None


def _fold(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def _includes(items: Any, target: Any, case_insensitive: bool) -> bool:
    if case_insensitive:
        target = _fold(target)
        return any(strict_equals(_fold(item), target) for item in items)
    return any(strict_equals(item, target) for item in items)


def _case_insensitive(options: ExpressionOptions | None) -> bool:
    return bool(options and options.case_insensitive)


# ---------------------------------------------------------------------------
# Scalar operators
# ---------------------------------------------------------------------------


def op_eq(value: Any, operand: Any, options: ExpressionOptions | None = None,
          context: Mapping[str, Any] | None = None) -> bool:
    """Strict equality; both sides absent counts as equal."""
    validate_value_type(value, ("string", "number", "boolean"), "eq")
    validate_operand_type(operand, ("null", "string", "number", "boolean"), "eq")

    if isinstance(operand, str) and _case_insensitive(options):
        return strict_equals(_fold(value), operand.lower())
    return strict_equals(value, operand)


def op_in(value: Any, operand: Any, options: ExpressionOptions | None = None,
          context: Mapping[str, Any] | None = None) -> bool:
    """Operand array contains the value."""
    validate_value_type(value, ("string", "number"), "in")
    validate_operand_type(
        operand, ("array",), "in", _is_array_of_scalars, expected="(string | number)[]"
    )

    if value is None:
        return False
    return _includes(operand, value, _case_insensitive(options))


def _string_operator(name: str, test: Callable[[str, str], bool]) -> OperatorFunction:
    def operator(value: Any, operand: Any, options: ExpressionOptions | None = None,
                 context: Mapping[str, Any] | None = None) -> bool:
        validate_value_type(value, ("string",), name)
        validate_operand_type(operand, ("string",), name)

        if value is None:
            return False
        if _case_insensitive(options):
            return test(value.lower(), operand.lower())
        return test(value, operand)

    operator.__name__ = f"op_{name}"
    operator.__doc__ = f"String test for the {name} operator."
    return operator


op_contains = _string_operator("contains", lambda value, operand: operand in value)
op_starts_with = _string_operator("startsWith", str.startswith)
op_ends_with = _string_operator("endsWith", str.endswith)


def op_gt(value: Any, operand: Any, options: ExpressionOptions | None = None,
          context: Mapping[str, Any] | None = None) -> bool:
    validate_value_type(value, ("number",), "gt")
    validate_operand_type(operand, ("number",), "gt")
    return value is not None and value > operand


def op_gte(value: Any, operand: Any, options: ExpressionOptions | None = None,
           context: Mapping[str, Any] | None = None) -> bool:
    validate_value_type(value, ("number",), "gte")
    validate_operand_type(operand, ("number",), "gte")
    return value is not None and value >= operand


# ---------------------------------------------------------------------------
# Array operators
# ---------------------------------------------------------------------------


def op_has(value: Any, operand: Any, options: ExpressionOptions | None = None,
           context: Mapping[str, Any] | None = None) -> bool:
    """Value array includes the operand."""
    validate_value_type(value, ("array",), "has", _is_array_of_scalars)
    validate_operand_type(operand, ("string", "number"), "has")

    if value is None:
        return False
    return _includes(value, operand, _case_insensitive(options))


def op_has_some(value: Any, operand: Any, options: ExpressionOptions | None = None,
                context: Mapping[str, Any] | None = None) -> bool:
    """At least one operand element is in the value array."""
    validate_value_type(value, ("array",), "hasSome", _is_array_of_scalars)
    validate_operand_type(
        operand, ("array",), "hasSome", _is_array_of_scalars, expected="(string | number)[]"
    )

    if value is None:
        return False
    case_insensitive = _case_insensitive(options)
    return any(_includes(value, item, case_insensitive) for item in operand)


def op_has_every(value: Any, operand: Any, options: ExpressionOptions | None = None,
                 context: Mapping[str, Any] | None = None) -> bool:
    """Every operand element is in the value array."""
    validate_value_type(value, ("array",), "hasEvery", _is_array_of_scalars)
    validate_operand_type(
        operand, ("array",), "hasEvery", _is_array_of_scalars, expected="(string | number)[]"
    )

    if value is None:
        return False
    case_insensitive = _case_insensitive(options)
    return all(_includes(value, item, case_insensitive) for item in operand)


# ---------------------------------------------------------------------------
# Quantifier operators
# ---------------------------------------------------------------------------


def _quantifier_operand(operand: Any, name: str) -> Condition:
    from rulegate.conditions.parser import is_well_formed_condition, parse_condition

    if isinstance(operand, Condition):
        return operand
    if is_well_formed_condition(operand):
        return parse_condition(operand)
    raise ConditionTypeError(
        f"The operand for condition with {name} operator must be one of the following "
        f"types: Record<string, ConditionExpression>. (received: {type_name(operand)})",
        operator=name,
        expected="Record<string, ConditionExpression>",
        received=type_name(operand),
    )


def _element_matcher(condition: Condition, context: Mapping[str, Any] | None) -> Callable[[Any], bool]:
    from rulegate.conditions.matcher import match_condition

    return lambda element: match_condition(element, condition, context)


def op_some(value: Any, operand: Any, options: ExpressionOptions | None = None,
            context: Mapping[str, Any] | None = None) -> bool:
    """At least one element satisfies the nested condition."""
    validate_value_type(value, ("array",), "some", _is_array_of_objects)
    condition = _quantifier_operand(operand, "some")

    if value is None:
        return False
    matches = _element_matcher(condition, context)
    return any(matches(element) for element in value)


def op_every(value: Any, operand: Any, options: ExpressionOptions | None = None,
             context: Mapping[str, Any] | None = None) -> bool:
    """
    All elements satisfy the nested condition.

    An absent or empty array does not satisfy ``every``.
    """
    validate_value_type(value, ("array",), "every", _is_array_of_objects)
    condition = _quantifier_operand(operand, "every")

    if not value:
        return False
    matches = _element_matcher(condition, context)
    return all(matches(element) for element in value)


def op_none(value: Any, operand: Any, options: ExpressionOptions | None = None,
            context: Mapping[str, Any] | None = None) -> bool:
    """No element satisfies the nested condition; absent or empty arrays pass."""
    validate_value_type(value, ("array",), "none", _is_array_of_objects)
    condition = _quantifier_operand(operand, "none")

    if not value:
        return True
    matches = _element_matcher(condition, context)
    return not any(matches(element) for element in value)


OPERATORS: dict[Operator, OperatorFunction] = {
    Operator.EQ: op_eq,
    Operator.IN: op_in,
    Operator.CONTAINS: op_contains,
    Operator.STARTS_WITH: op_starts_with,
    Operator.ENDS_WITH: op_ends_with,
    Operator.GT: op_gt,
    Operator.GTE: op_gte,
    Operator.HAS: op_has,
    Operator.HAS_SOME: op_has_some,
    Operator.HAS_EVERY: op_has_every,
    Operator.SOME: op_some,
    Operator.EVERY: op_every,
    Operator.NONE: op_none,
}

_unmapped = set(Operator) - set(OPERATORS)
if _unmapped:
    raise RuntimeError(f"Operators without an implementation: {sorted(op.value for op in _unmapped)}")


def apply_operator(
    operator: Operator,
    value: Any,
    operand: Any,
    options: ExpressionOptions | None = None,
    context: Mapping[str, Any] | None = None,
) -> bool:
    """Evaluate ``operator`` against a resolved value and operand."""
    return OPERATORS[operator](value, operand, options, context)
