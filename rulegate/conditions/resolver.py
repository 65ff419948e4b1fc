"""
Value resolution for condition evaluation.

Extracts values from resource instances and evaluation contexts by dotted
path. Resolution never raises: a missing key, a failing attribute, or a None
intermediate value resolves to None.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

# Reserved prefixes marking an operand as a reference into the context
CONTEXT_PREFIXES = ("$ctx.", "ctx.", "$context.", "context.")

# Segment marker for null-safe traversal (``address?.line1``)
_NULL_SAFE_MARKER = "?"


def is_contextual_operand(operand: Any) -> bool:
    """
    Check whether an operand is a reference into the evaluation context.

    Args:
        operand: The raw operand from a condition expression.

    Returns:
        True if the operand is a string starting with a context prefix.

    Example:
        >>> is_contextual_operand("$ctx.user.id")
        True
        >>> is_contextual_operand("user.id")
        False
    """
    return isinstance(operand, str) and operand.startswith(CONTEXT_PREFIXES)


def strip_context_prefix(path: str) -> str:
    """Remove the context prefix from a reference, if present."""
    for prefix in CONTEXT_PREFIXES:
        if path.startswith(prefix):
            return path[len(prefix):]
    return path


def split_path(path: str) -> list[str]:
    """Split a dotted path, normalizing null-safe segments."""
    return [segment.rstrip(_NULL_SAFE_MARKER) for segment in path.split(".")]


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, Mapping):
        try:
            return current.get(segment)
        except Exception as e:
            logger.debug(f"Lookup of '{segment}' failed on {type(current).__name__}: {e}")
            return None

    if isinstance(current, (list, tuple, str)):
        if segment == "length":
            return len(current)
        # ASCII only: str.isdigit also accepts superscripts that int() rejects
        if segment.isascii() and segment.isdigit():
            index = int(segment)
            return current[index] if index < len(current) else None
        return None

    if isinstance(current, (int, float, bool, bytes)):
        return None

    try:
        return getattr(current, segment, None)
    except Exception as e:
        logger.debug(f"Attribute '{segment}' failed on {type(current).__name__}: {e}")
        return None


def resolve_path(root: Any, path: str) -> Any:
    """
    Walk a dotted path through nested mappings, sequences and objects.

    Args:
        root: The object to start from.
        path: Dot-separated path. ``?.`` segments are treated like ``.``.

    Returns:
        The value found, or None as soon as an intermediate value is absent.
    """
    current = root
    for segment in split_path(path):
        if current is None:
            return None
        current = _step(current, segment)
    return current


def get_resource_value(instance: Any, path: str) -> Any:
    """Retrieve the value at ``path`` in a resource instance."""
    return resolve_path(instance, path)


def get_context_value(context: Mapping[str, Any] | None, path: str) -> Any:
    """
    Retrieve the value a contextual operand refers to.

    Args:
        context: The evaluation context. None is treated as empty.
        path: The reference, with or without its context prefix.

    Example:
        >>> get_context_value({"user": {"name": "Ada"}}, "$ctx.user.name")
        'Ada'
        >>> get_context_value({"user": None}, "$ctx.user?.name") is None
        True
    """
    return resolve_path(context if context is not None else {}, strip_context_prefix(path))
