"""
Query-filter transformers for Rulegate.

A transformer is any callable taking a list of rules (with contextual
operands already substituted) and returning a database filter object.
"""

from rulegate.query_filter.prisma import prisma, to_prisma_where

__all__ = [
    "prisma",
    "to_prisma_where",
]
