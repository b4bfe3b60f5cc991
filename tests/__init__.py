"""
Test suite for proximal

Contains:
- tests/unit/          : Unit tests for bit primitives, ULP arithmetic,
                         the comparator and configuration loading
"""
