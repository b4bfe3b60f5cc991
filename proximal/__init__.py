"""
proximal — ULP-based approximate equality for floating-point values.

Exact bit-level primitives (exponent, significand, denormal-aware exponent,
exact powers of two) for single, double and x87 extended precision, the
derived ulp/margin functions, and the Proximal comparator built on them.
"""

import logging

from proximal.comparator import Proximal
from proximal.config import DEFAULT_TOLERANCE, ProximalConfig, load_config, parse_config
from proximal.core.domain import (
    Bits80,
    DoubleRepresentation,
    ExtendedRepresentation,
    Precision,
    PrecisionMismatchError,
    SingleRepresentation,
    UnsupportedPrecisionError,
    representation_for,
)
from proximal.core.math.bits import count_leading_zeros
from proximal.core.math.ulp import exp2i, ilog2, margin, ulp

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Comparator
    "Proximal",
    # Configuration
    "DEFAULT_TOLERANCE",
    "ProximalConfig",
    "load_config",
    "parse_config",
    # Representations
    "Bits80",
    "DoubleRepresentation",
    "ExtendedRepresentation",
    "SingleRepresentation",
    "representation_for",
    "Precision",
    # Exceptions
    "PrecisionMismatchError",
    "UnsupportedPrecisionError",
    # Free functions
    "count_leading_zeros",
    "exp2i",
    "ilog2",
    "margin",
    "ulp",
]
