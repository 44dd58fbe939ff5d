"""
Validation module for the filterkit engine.

This module provides per-kind value validation for filter conditions.
"""

from .rules import (
    ValidationResult,
    KIND_OPERATORS,
    VALIDATORS,
    unsupported_operator_error,
    validate_string_value,
    validate_number_value,
    validate_date_value,
    validate_currency_value,
    validate_boolean_value,
    validate_enumeration_value,
    validate_reference_value,
)

__all__ = [
    "ValidationResult",
    "KIND_OPERATORS",
    "VALIDATORS",
    "unsupported_operator_error",
    "validate_string_value",
    "validate_number_value",
    "validate_date_value",
    "validate_currency_value",
    "validate_boolean_value",
    "validate_enumeration_value",
    "validate_reference_value",
]
