"""
Pydantic validation of raw rule documents.

Rules usually arrive as plain mappings (from JSON files, databases or
application code). This module checks their outer structure before the
condition is parsed: resource and action present and non-empty, effect given
as "allow"/"deny" (or as ``inverted``), condition a mapping or null.

The condition content is intentionally not type-checked here; operand types
are checked when a condition is evaluated.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from rulegate.exceptions import RuleValidationError

logger = logging.getLogger(__name__)


class RuleDocument(BaseModel):
    """
    Structural schema for a raw rule.

    Rules written in the earlier shape carry ``inverted: bool`` instead of
    ``effect``; ``inverted: true`` is read as ``effect: "deny"``. A rule with
    neither field is rejected.

    Example:
        >>> RuleDocument.model_validate({
        ...     "resource": "post",
        ...     "action": "read",
        ...     "condition": None,
        ...     "inverted": True,
        ... }).effect
        'deny'
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    resource: str = Field(min_length=1)
    action: str = Field(min_length=1)
    condition: Optional[dict[str, Any]] = None
    effect: Literal["allow", "deny"]

    @model_validator(mode="before")
    @classmethod
    def _inverted_to_effect(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "effect" not in data and "inverted" in data:
            data["effect"] = "deny" if data.pop("inverted") else "allow"
        if isinstance(data.get("effect"), Enum):
            data["effect"] = data["effect"].value
        return data


def validate_rule_document(data: Any) -> RuleDocument:
    """
    Validate a raw rule mapping.

    Raises:
        RuleValidationError: If the document does not match RuleDocument.
    """
    try:
        return RuleDocument.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(loc) for loc in error['loc']) or 'rule'}: {error['msg']}"
            for error in e.errors()
        ]
        raise RuleValidationError(data, errors) from e


def load_rules(source: str | Path) -> list[Any]:
    """
    Load and parse rules from a JSON file.

    The file must contain a JSON array of rule objects.

    Args:
        source: Path to the JSON file.

    Returns:
        List of parsed Rule objects.

    Raises:
        RuleValidationError: If the file is not an array or a rule is invalid.
    """
    from rulegate.conditions.parser import parse_rules

    path = Path(source)
    with path.open(encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise RuleValidationError(data, [f"{path}: expected a JSON array of rules"])

    rules = parse_rules(data)
    logger.debug(f"Loaded {len(rules)} rules from {path}")
    return rules
