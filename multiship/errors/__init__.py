"""Error handling framework for multiship.

This package provides:
- Error code registry with E-XXXX format codes
- MultiShipError and formatting helpers
- Domain exceptions raised by wizard validation

Error categories:
- E-2xxx: Wizard validation errors
- E-3xxx: Checkout gateway errors
- E-4xxx: System/internal errors
"""

from multiship.errors.domain import (
    DomainError,
    EditInProgressError,
    WizardValidationError,
)
from multiship.errors.formatter import (
    MultiShipError,
    format_error,
    group_errors,
)
from multiship.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Formatter
    "MultiShipError",
    "format_error",
    "group_errors",
    # Domain
    "DomainError",
    "WizardValidationError",
    "EditInProgressError",
]
