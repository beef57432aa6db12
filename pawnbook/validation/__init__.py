"""Validation package."""

from pawnbook.validation.validator import (
    InvalidTransitionError,
    LedgerValidator,
    ValidationError,
)

__all__ = ["InvalidTransitionError", "LedgerValidator", "ValidationError"]
