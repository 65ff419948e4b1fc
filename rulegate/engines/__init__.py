"""
Rule resolution engines for Rulegate.

Quick Start:
    >>> from rulegate.engines import RuleResolutionEngine
    >>>
    >>> engine = RuleResolutionEngine({"max_rule_iterations": 500})
    >>> engine.resolve(rules, instance, context).allowed
"""

from rulegate.engines.resolution import (
    DEFAULT_MAX_RULE_ITERATIONS,
    RuleResolutionEngine,
)

__all__ = [
    "DEFAULT_MAX_RULE_ITERATIONS",
    "RuleResolutionEngine",
]
