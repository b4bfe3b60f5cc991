"""
Domain models: format traits and bit representations.
"""

from proximal.core.domain.formats import (
    DOUBLE_TRAITS,
    EXTENDED_TRAITS,
    HAS_X87_EXTENDED,
    SINGLE_TRAITS,
    FormatTraits,
    Precision,
    PrecisionMismatchError,
    UnsupportedPrecisionError,
    common_scalar_type,
    generic_traits,
    precision_of,
    scalar_type_of,
    traits_for_type,
)
from proximal.core.domain.representation import (
    DEFAULT_SPECIALIZATIONS,
    Bits80,
    DoubleRepresentation,
    ExtendedRepresentation,
    GenericRepresentation,
    Representation,
    SingleRepresentation,
    generic_representation,
    representation_for,
    representation_for_type,
    representation_type,
)

__all__ = [
    # Format traits
    "DOUBLE_TRAITS",
    "EXTENDED_TRAITS",
    "HAS_X87_EXTENDED",
    "SINGLE_TRAITS",
    "FormatTraits",
    "Precision",
    "generic_traits",
    "precision_of",
    "scalar_type_of",
    "traits_for_type",
    "common_scalar_type",
    # Exceptions
    "PrecisionMismatchError",
    "UnsupportedPrecisionError",
    # Representations
    "DEFAULT_SPECIALIZATIONS",
    "Bits80",
    "Representation",
    "SingleRepresentation",
    "DoubleRepresentation",
    "ExtendedRepresentation",
    "GenericRepresentation",
    "generic_representation",
    "representation_for",
    "representation_for_type",
    "representation_type",
]
