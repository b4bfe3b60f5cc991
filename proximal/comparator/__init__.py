"""Comparator — предикат близости значений с допуском в ULP."""

from .proximal import Proximal

__all__ = [
    "Proximal",
]
