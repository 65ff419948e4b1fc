"""
Rulegate test suite.

This package contains tests for the Rulegate library:
- Value resolution and operator tests
- Condition parsing and matching tests
- Rule resolution engine tests
- Storage, caching and validation tests
- Facade and query-filter tests
"""
