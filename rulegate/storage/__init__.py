"""
Rule storages for Rulegate.

- Storage: protocol every storage implements
- InMemoryStorage: process-local storage indexed by action and resource
"""

from rulegate.storage.base import Storage
from rulegate.storage.inmemory import InMemoryStorage

__all__ = [
    "Storage",
    "InMemoryStorage",
]
