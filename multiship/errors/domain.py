"""Typed domain exceptions raised by the wizard before any gateway call.

Validation failures are recovered locally: the wizard catches them, keeps
the current edit state, and exposes the message to the shopper.

Usage:
    raise EditInProgressError(current_item_id)
"""

from multiship.errors.formatter import MultiShipError


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class WizardValidationError(DomainError):
    """Rejected wizard action, built from a registry code."""

    def __init__(self, code: str, **context: object) -> None:
        self.error = MultiShipError.from_code(code, **context)
        self.code = code
        super().__init__(self.error.message)


class EditInProgressError(WizardValidationError):
    """Another line item is already mid-edit."""

    def __init__(self, item_id: str) -> None:
        super().__init__("E-2105", item_id=item_id, item_ids=[item_id])
        self.item_id = item_id
