"""
Core type definitions for Rulegate.

This module defines the data model shared by the matcher, the resolution
engine and the facade: rules, conditions, condition expressions and their
operands, and the result of resolving a set of rules.

Conditions are held in a typed form. Raw rule data (nested lists and dicts,
as stored in JSON) is translated once by ``rulegate.conditions.parser`` and
can always be turned back into its raw shape with ``to_raw()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class Effect(str, Enum):
    """Outcome a matching rule contributes to the final decision."""

    ALLOW = "allow"
    DENY = "deny"


class Operator(str, Enum):
    """
    Closed set of condition operators.

    The enum value is the operator name as written in rule data.
    """

    EQ = "eq"
    IN = "in"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GT = "gt"
    GTE = "gte"
    HAS = "has"
    HAS_SOME = "hasSome"
    HAS_EVERY = "hasEvery"
    SOME = "some"
    EVERY = "every"
    NONE = "none"

    @classmethod
    def from_name(cls, name: Any) -> Operator | None:
        """
        Look up an operator by its rule-data name.

        Returns None for names outside the operator set so that rule data
        written against a newer or older operator set evaluates to False
        instead of failing.
        """
        if not isinstance(name, str):
            return None
        name = _OPERATOR_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def is_quantifier(self) -> bool:
        """Whether the operand is a nested condition applied per element."""
        return self in (Operator.SOME, Operator.EVERY, Operator.NONE)


# Spelling used by the earlier operator set
_OPERATOR_ALIASES = {"equals": "eq"}


@dataclass(frozen=True)
class ExpressionOptions:
    """
    Options attached to a condition expression.

    Attributes:
        case_insensitive: Compare strings after lower-casing both sides.
    """

    case_insensitive: bool = False

    def to_raw(self) -> dict[str, Any]:
        """Convert to the raw options mapping."""
        return {"caseInsensitive": self.case_insensitive}


@dataclass(frozen=True)
class LiteralOperand:
    """An operand given literally in the rule."""

    value: Any

    def to_raw(self) -> Any:
        return self.value


@dataclass(frozen=True)
class ContextOperand:
    """
    An operand referring to a value in the evaluation context.

    Attributes:
        path: The reference as written, including its prefix
            (e.g. ``"$ctx.role?.name"``).
    """

    path: str

    def to_raw(self) -> str:
        return self.path


@dataclass(frozen=True)
class Expression:
    """
    A single ``[operator, operand, options?]`` leaf constraint.

    Attributes:
        name: Operator name as written in the rule.
        operator: The resolved operator, or None if the name is unknown.
        operand: Literal, context reference, or nested condition for the
            quantifier operators.
        options: Expression options, None when the rule gave none.
    """

    name: str
    operator: Operator | None
    operand: Operand
    options: ExpressionOptions | None = None

    @property
    def case_insensitive(self) -> bool:
        return bool(self.options and self.options.case_insensitive)

    def to_raw(self) -> list[Any]:
        raw = [self.name, self.operand.to_raw()]
        if self.options is not None:
            raw.append(self.options.to_raw())
        return raw


@dataclass(frozen=True)
class NestedCondition:
    """
    A condition applied to an object- or array-valued field.

    Attributes:
        condition: Constraints on the field value's own fields.
        expr: Optional ``$expr`` expression matched against the field value
            itself (e.g. a quantifier over an array).
    """

    condition: Condition
    expr: Expression | None = None

    def to_raw(self) -> dict[str, Any]:
        raw = self.condition.to_raw()
        if self.expr is not None:
            raw["$expr"] = self.expr.to_raw()
        return raw


@dataclass(frozen=True)
class InvalidClause:
    """A condition entry that is neither an expression nor a nested condition."""

    raw: Any

    def to_raw(self) -> Any:
        return self.raw


@dataclass(frozen=True)
class Condition:
    """
    Conjunction of per-field constraints.

    Attributes:
        clauses: Ordered ``(field_path, clause)`` pairs.
    """

    clauses: tuple[tuple[str, Clause], ...] = ()

    def items(self) -> tuple[tuple[str, Clause], ...]:
        return self.clauses

    def __len__(self) -> int:
        return len(self.clauses)

    def to_raw(self) -> dict[str, Any]:
        return {key: clause.to_raw() for key, clause in self.clauses}


Operand = Union[LiteralOperand, ContextOperand, Condition]
Clause = Union[Expression, NestedCondition, InvalidClause]


@dataclass(frozen=True)
class Rule:
    """
    An allow/deny statement scoped to an action and a resource type.

    Attributes:
        resource: Resource type key (e.g. "post").
        action: Action name (e.g. "read").
        condition: Optional condition the resource instance must satisfy.
        effect: Whether a match allows or denies the action.

    Example:
        >>> rule = Rule.from_dict({
        ...     "resource": "post",
        ...     "action": "read",
        ...     "condition": {"published": ["eq", True]},
        ...     "effect": "allow",
        ... })
    """

    resource: str
    action: str
    condition: Condition | None = None
    effect: Effect = Effect.ALLOW

    @property
    def is_allow(self) -> bool:
        return self.effect is Effect.ALLOW

    @property
    def is_deny(self) -> bool:
        return self.effect is Effect.DENY

    @classmethod
    def from_dict(cls, data: Any) -> Rule:
        """Validate and parse a raw rule mapping."""
        from rulegate.conditions.parser import parse_rule

        return parse_rule(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the raw rule mapping."""
        return {
            "resource": self.resource,
            "action": self.action,
            "condition": self.condition.to_raw() if self.condition is not None else None,
            "effect": self.effect.value,
        }


@dataclass
class Resolution:
    """
    Result of resolving the candidate rules for one request.

    Attributes:
        allowed: Final verdict.
        matched_allow: Allow rules whose condition matched.
        matched_deny: Deny rules whose condition matched.
        inspected: Number of candidate rules inspected.
        circuit_breaker_tripped: True if the candidate count exceeded the
            iteration ceiling and the verdict was forced to False.
    """

    allowed: bool
    matched_allow: list[Rule] = field(default_factory=list)
    matched_deny: list[Rule] = field(default_factory=list)
    inspected: int = 0
    circuit_breaker_tripped: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "allowed": self.allowed,
            "matched_allow": [rule.to_dict() for rule in self.matched_allow],
            "matched_deny": [rule.to_dict() for rule in self.matched_deny],
            "inspected": self.inspected,
            "circuit_breaker_tripped": self.circuit_breaker_tripped,
        }
