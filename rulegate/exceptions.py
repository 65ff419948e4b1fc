"""
Custom exceptions for Rulegate.

This module defines the exception hierarchy for the library. Only rule
authoring defects and configuration problems are raised: absent data,
unknown operators and circuit breaker trips resolve to a boolean instead.
"""

from __future__ import annotations

from typing import Any


class RulegateError(Exception):
    """
    Base exception for all Rulegate errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context about the error.

    Example:
        >>> try:
        ...     await gate.can("read", ("post", post))
        ... except RulegateError as e:
        ...     logger.error(f"Rule evaluation failed: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConditionTypeError(RulegateError, TypeError):
    """
    Raised when a condition cannot be evaluated because of a type mismatch.

    Covers resource values of the wrong type for an operator, operands of the
    wrong type, and condition trees containing entries that are neither an
    expression nor a nested condition. These are rule authoring defects and
    must not be mistaken for a denied permission.

    Attributes:
        operator: The operator being evaluated (None for malformed trees).
        expected: Description of the accepted types.
        received: Name of the type actually received.

    Example:
        >>> raise ConditionTypeError(
        ...     "Unexpected resource value type",
        ...     operator="contains",
        ...     expected="string",
        ...     received="int",
        ... )
    """

    def __init__(
        self,
        message: str,
        operator: str | None = None,
        expected: str | None = None,
        received: str | None = None,
    ) -> None:
        self.operator = operator
        self.expected = expected
        self.received = received

        details = {
            "operator": operator,
            "expected": expected,
            "received": received,
        }
        super().__init__(message, {k: v for k, v in details.items() if v is not None})


class RuleValidationError(RulegateError, ValueError):
    """
    Raised when a raw rule document is structurally invalid.

    Attributes:
        rule: The offending raw rule.
        validation_errors: List of validation messages.
    """

    def __init__(
        self,
        rule: Any,
        validation_errors: list[str] | None = None,
    ) -> None:
        self.rule = rule
        self.validation_errors = validation_errors or []

        message = "Invalid rule document"
        if self.validation_errors:
            message += f": {'; '.join(self.validation_errors)}"

        super().__init__(message, {"rule": repr(rule), "errors": self.validation_errors})


class ConfigurationError(RulegateError):
    """
    Raised when there is a configuration error in Rulegate setup.

    Attributes:
        config_key: The configuration key that has an issue.
        expected: What was expected for this configuration.
        received: What was actually provided.

    Example:
        >>> raise ConfigurationError(
        ...     config_key="max_rule_iterations",
        ...     expected="a positive integer",
        ...     received=0,
        ... )
    """

    def __init__(
        self,
        config_key: str,
        expected: str | None = None,
        received: Any = None,
    ) -> None:
        self.config_key = config_key
        self.expected = expected
        self.received = received

        message = f"Configuration error for '{config_key}'"
        if expected:
            message += f": expected {expected}"
        if received is not None:
            message += f", got {received!r}"

        details = {
            "config_key": config_key,
            "expected": expected,
            "received": str(received) if received is not None else None,
        }
        super().__init__(message, details)


class UnsupportedOperatorError(RulegateError):
    """Raised when a query-filter transformer meets an operator it cannot project."""

    def __init__(self, operator: str, transformer: str) -> None:
        self.operator = operator
        self.transformer = transformer
        super().__init__(
            f"Unsupported operator: {operator}",
            {"operator": operator, "transformer": transformer},
        )


class UncacheableValueError(RulegateError, TypeError):
    """
    Raised when a value has no structural encoding for a cache key.

    Only None, booleans, numbers, strings, sequences and mappings of those
    can be fingerprinted. Callers skip caching for anything else.

    Attributes:
        value_type: Name of the offending value's type.
    """

    def __init__(self, value: Any) -> None:
        self.value_type = type(value).__name__
        super().__init__(
            f"Cannot build a cache key from a value of type {self.value_type}",
            {"value_type": self.value_type},
        )
