"""Tests for condition operators."""

from __future__ import annotations

import pytest

from rulegate.conditions import match_expression, strict_equals
from rulegate.conditions.operators import (
    OPERATORS,
    apply_operator,
    is_number,
    type_name,
    validate_operand_type,
    validate_value_type,
)
from rulegate.exceptions import ConditionTypeError, RulegateError
from rulegate.types import Operator


class TestTypeHelpers:
    """Test value type classification."""

    def test_bool_is_not_a_number(self):
        assert is_number(1)
        assert is_number(1.5)
        assert not is_number(True)

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "null"),
            (False, "boolean"),
            (3, "number"),
            ("x", "string"),
            ([1], "array"),
            ((1,), "array"),
            ({"a": 1}, "object"),
        ],
    )
    def test_type_name(self, value, expected):
        assert type_name(value) == expected

    def test_strict_equals_never_crosses_types(self):
        assert strict_equals(1, 1.0)
        assert not strict_equals(True, 1)
        assert not strict_equals("1", 1)
        assert strict_equals(None, None)
        assert not strict_equals(None, 0)

    def test_validate_value_type_accepts_none(self):
        validate_value_type(None, ("string",), "contains")

    def test_validate_operand_type_rejects_none(self):
        with pytest.raises(ConditionTypeError) as exc_info:
            validate_operand_type(None, ("string",), "contains")
        assert exc_info.value.received == "null"

    def test_every_operator_has_an_implementation(self):
        assert set(OPERATORS) == set(Operator)


class TestEq:
    """Test the eq operator."""

    def test_equal_values(self):
        assert match_expression("a", ["eq", "a"])
        assert match_expression(3, ["eq", 3])
        assert match_expression(False, ["eq", False])

    def test_different_values(self):
        assert not match_expression("a", ["eq", "b"])
        assert not match_expression(True, ["eq", 1])

    def test_case_insensitive(self):
        assert match_expression("Admin", ["eq", "admin", {"caseInsensitive": True}])
        assert not match_expression("Admin", ["eq", "admin"])

    def test_snake_case_option_key(self):
        assert match_expression("Admin", ["eq", "admin", {"case_insensitive": True}])

    def test_null_handling(self):
        assert match_expression(None, ["eq", None])
        assert not match_expression(None, ["eq", "a"])
        assert not match_expression("a", ["eq", None])

    def test_equals_alias(self):
        assert match_expression("a", ["equals", "a"])

    def test_invalid_value_type(self):
        with pytest.raises(ConditionTypeError):
            match_expression(["a"], ["eq", "a"])

    def test_invalid_operand_type(self):
        with pytest.raises(ConditionTypeError):
            match_expression("a", ["eq", ["a"]])


class TestIn:
    """Test the in operator."""

    def test_membership(self):
        assert match_expression("b", ["in", ["a", "b"]])
        assert match_expression(2, ["in", [1, 2]])
        assert not match_expression("c", ["in", ["a", "b"]])

    def test_case_insensitive(self):
        assert match_expression("B", ["in", ["a", "b"], {"caseInsensitive": True}])

    def test_none_value(self):
        assert not match_expression(None, ["in", ["a"]])

    def test_boolean_value_rejected(self):
        with pytest.raises(ConditionTypeError):
            match_expression(True, ["in", ["a"]])

    def test_non_array_operand_rejected(self):
        with pytest.raises(ConditionTypeError):
            match_expression("a", ["in", "abc"])


class TestStringOperators:
    """Test contains, startsWith and endsWith."""

    def test_contains(self):
        assert match_expression("hello world", ["contains", "lo wo"])
        assert not match_expression("hello", ["contains", "xyz"])

    def test_starts_with(self):
        assert match_expression("hello world", ["startsWith", "HELLO", {"caseInsensitive": True}])
        assert not match_expression("hello world", ["startsWith", "HELLO"])

    def test_ends_with(self):
        assert match_expression("report.pdf", ["endsWith", ".pdf"])
        assert not match_expression("report.pdf", ["endsWith", ".doc"])

    @pytest.mark.parametrize("operator", ["contains", "startsWith", "endsWith"])
    def test_none_value(self, operator):
        assert not match_expression(None, [operator, "x"])

    @pytest.mark.parametrize("operator", ["contains", "startsWith", "endsWith"])
    def test_number_value_raises_type_error(self, operator):
        with pytest.raises(TypeError):
            match_expression(42, [operator, "4"])

    def test_error_is_a_rulegate_error(self):
        with pytest.raises(RulegateError) as exc_info:
            match_expression(42, ["contains", "4"])
        assert exc_info.value.operator == "contains"
        assert exc_info.value.received == "number"


class TestNumericOperators:
    """Test gt and gte."""

    def test_gt(self):
        assert match_expression(5, ["gt", 3])
        assert not match_expression(3, ["gt", 3])

    def test_gte(self):
        assert match_expression(3, ["gte", 3])
        assert match_expression(3.5, ["gte", 3])
        assert not match_expression(2, ["gte", 3])

    def test_none_value(self):
        assert not match_expression(None, ["gt", 0])
        assert not match_expression(None, ["gte", 0])

    def test_string_value_rejected(self):
        with pytest.raises(ConditionTypeError):
            match_expression("5", ["gt", 3])

    def test_boolean_operand_rejected(self):
        with pytest.raises(ConditionTypeError):
            match_expression(5, ["gte", True])


class TestArrayOperators:
    """Test has, hasSome and hasEvery."""

    def test_has(self):
        assert match_expression(["a", "b"], ["has", "a"])
        assert not match_expression(["a", "b"], ["has", "c"])
        assert match_expression(["A"], ["has", "a", {"caseInsensitive": True}])

    def test_has_some(self):
        assert match_expression(["a", "b"], ["hasSome", ["c", "b"]])
        assert not match_expression(["a", "b"], ["hasSome", ["c"]])

    def test_has_every(self):
        assert match_expression(["a", "b", "c"], ["hasEvery", ["a", "c"]])
        assert not match_expression(["a"], ["hasEvery", ["a", "c"]])

    def test_empty_operands(self):
        assert not match_expression(["a"], ["hasSome", []])
        assert match_expression(["a"], ["hasEvery", []])

    @pytest.mark.parametrize("operator, operand", [("has", "a"), ("hasSome", ["a"]), ("hasEvery", ["a"])])
    def test_none_value(self, operator, operand):
        assert not match_expression(None, [operator, operand])

    def test_non_array_value_rejected(self):
        with pytest.raises(ConditionTypeError):
            match_expression("a", ["has", "a"])

    def test_array_of_objects_rejected(self):
        with pytest.raises(ConditionTypeError):
            match_expression([{"a": 1}], ["has", "a"])


class TestQuantifiers:
    """Test some, every and none."""

    roles = [{"name": "admin"}, {"name": "user"}]

    def test_some(self):
        assert match_expression(self.roles, ["some", {"name": ["eq", "admin"]}])
        assert not match_expression(self.roles, ["some", {"name": ["eq", "guest"]}])

    def test_every(self):
        assert match_expression(self.roles, ["every", {"name": ["in", ["admin", "user"]]}])
        assert not match_expression(self.roles, ["every", {"name": ["eq", "admin"]}])

    def test_none(self):
        assert match_expression(self.roles, ["none", {"name": ["eq", "guest"]}])
        assert not match_expression(self.roles, ["none", {"name": ["eq", "admin"]}])

    def test_empty_and_absent_arrays(self):
        condition = {"name": ["eq", "admin"]}
        assert not match_expression([], ["some", condition])
        assert not match_expression([], ["every", condition])
        assert match_expression([], ["none", condition])
        assert not match_expression(None, ["some", condition])
        assert not match_expression(None, ["every", condition])
        assert match_expression(None, ["none", condition])

    def test_contextual_operand_inside_quantifier(self):
        assert match_expression(
            self.roles,
            ["some", {"name": ["eq", "$ctx.role"]}],
            {"role": "user"},
        )

    def test_invalid_operand_rejected(self):
        with pytest.raises(ConditionTypeError) as exc_info:
            match_expression(self.roles, ["some", "admin"])
        assert exc_info.value.expected == "Record<string, ConditionExpression>"

    def test_array_of_scalars_rejected(self):
        with pytest.raises(ConditionTypeError):
            match_expression(["admin"], ["some", {"name": ["eq", "admin"]}])


class TestMalformedExpressions:
    """Test expressions that cannot be evaluated."""

    def test_unknown_operator(self):
        assert not match_expression("a", ["like", "a"])

    def test_too_short(self):
        assert not match_expression("a", ["eq"])

    def test_not_a_list(self):
        assert not match_expression("a", "eq")

    def test_apply_operator_directly(self):
        assert apply_operator(Operator.GT, 2, 1)
