"""
Core numeric primitives: format traits, bit representations, ULP arithmetic.

This package is independent of the comparator and of configuration loading.
"""
