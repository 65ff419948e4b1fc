"""
Rule document validation for Rulegate.
"""

from rulegate.validation.rule_schema import (
    RuleDocument,
    load_rules,
    validate_rule_document,
)

__all__ = [
    "RuleDocument",
    "load_rules",
    "validate_rule_document",
]
