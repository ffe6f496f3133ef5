# src/proforma/domain/errors.py
from __future__ import annotations


class ModelError(ValueError):
    """Base class for every error the modeling engine raises on purpose."""


class InvalidInputError(ModelError):
    """
    A numeric input would make a metric degenerate (division by zero,
    non-positive term, ...). `field` names the offending input.
    """

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"Invalid input for field '{field}'")


class UnknownVariableError(ModelError):
    """A sensitivity / Monte Carlo variable name does not map to a model field."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown model variable: '{name}'")


class RangeValidationError(ModelError):
    """Degenerate ranges, counts or probability sets rejected before computation."""
