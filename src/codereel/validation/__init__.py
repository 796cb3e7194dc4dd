"""Structural and business-rule validation of imported data."""

from codereel.validation.validator import (
    DataValidator,
    ValidationError,
    ValidationResult,
    ValidationWarning,
)

__all__ = ["DataValidator", "ValidationError", "ValidationResult", "ValidationWarning"]
