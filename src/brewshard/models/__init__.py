"""Data models for brewshard."""

from brewshard.models.formula import (
    Formula,
    MissingFieldError,
    normalize_formula,
    normalize_formulae,
)

__all__ = [
    "Formula",
    "MissingFieldError",
    "normalize_formula",
    "normalize_formulae",
]
