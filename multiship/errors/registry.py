"""Error code registry with E-XXXX format codes.

This module defines the error code system for multiship, organizing errors
into categories:
- E-2xxx: Wizard validation errors (recovered locally)
- E-3xxx: Checkout gateway errors
- E-4xxx: System/internal errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    VALIDATION = "validation"  # E-2xxx: Wizard validation errors
    GATEWAY = "gateway"  # E-3xxx: Checkout gateway errors
    SYSTEM = "system"  # E-4xxx: System/internal errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action the shopper should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Validation errors (E-2xxx)
    "E-2101": ErrorCode(
        code="E-2101",
        category=ErrorCategory.VALIDATION,
        title="Invalid Address",
        message_template="Please provide a valid address with all required fields",
        remediation="Fill in the missing fields: {fields}.",
    ),
    "E-2102": ErrorCode(
        code="E-2102",
        category=ErrorCategory.VALIDATION,
        title="Missing Address",
        message_template="Please select a shipping address",
        remediation="Choose or enter an address for this item before continuing.",
    ),
    "E-2103": ErrorCode(
        code="E-2103",
        category=ErrorCategory.VALIDATION,
        title="Missing Shipping Method",
        message_template="Please select a shipping method",
        remediation="Pick one of the shipping options offered for this address.",
    ),
    "E-2104": ErrorCode(
        code="E-2104",
        category=ErrorCategory.VALIDATION,
        title="Missing Delivery Date",
        message_template="Please select a delivery date",
        remediation="Choose a delivery date for this item.",
    ),
    "E-2105": ErrorCode(
        code="E-2105",
        category=ErrorCategory.VALIDATION,
        title="Edit In Progress",
        message_template="Please complete editing the current item first",
        remediation="Finish or cancel the item '{item_id}' before editing another one.",
    ),
    "E-2106": ErrorCode(
        code="E-2106",
        category=ErrorCategory.VALIDATION,
        title="Invalid Split",
        message_template="Item '{item_id}' cannot be split: {reason}",
        remediation="Only unshipped items with a quantity above one can be split.",
    ),
    "E-2107": ErrorCode(
        code="E-2107",
        category=ErrorCategory.VALIDATION,
        title="Unknown Shipping Option",
        message_template="Shipping option '{option_id}' is not available for this address",
        remediation="Pick one of the listed shipping options.",
    ),
    "E-2108": ErrorCode(
        code="E-2108",
        category=ErrorCategory.VALIDATION,
        title="Item Not Editable",
        message_template="Item '{item_id}' is not being edited",
        remediation="Open the item for editing first.",
    ),
    "E-2109": ErrorCode(
        code="E-2109",
        category=ErrorCategory.VALIDATION,
        title="Shipping Incomplete",
        message_template="Please configure shipping for every item",
        remediation="Complete the address and shipping method for each item.",
    ),
    "E-2110": ErrorCode(
        code="E-2110",
        category=ErrorCategory.VALIDATION,
        title="Feature Disabled",
        message_template="{feature} is not enabled for this checkout",
        remediation="Enable the feature in the multiship configuration.",
    ),
    "E-2111": ErrorCode(
        code="E-2111",
        category=ErrorCategory.VALIDATION,
        title="Unknown Item",
        message_template="Item '{item_id}' is not part of this cart",
        remediation="Reload the checkout and try again.",
    ),
    "E-2112": ErrorCode(
        code="E-2112",
        category=ErrorCategory.VALIDATION,
        title="No Item Open",
        message_template="No item is open for editing",
        remediation="Choose an item to edit first.",
    ),
    # Gateway errors (E-3xxx)
    "E-3101": ErrorCode(
        code="E-3101",
        category=ErrorCategory.GATEWAY,
        title="Checkout Request Failed",
        message_template="{message}",
        remediation="Try again. If the problem persists, reload the checkout.",
        is_retryable=True,
    ),
    "E-3102": ErrorCode(
        code="E-3102",
        category=ErrorCategory.GATEWAY,
        title="Consignment Missing",
        message_template="No consignment for item '{item_id}' in the checkout response",
        remediation="Reload the checkout and select the address again.",
        is_retryable=True,
    ),
    "E-3103": ErrorCode(
        code="E-3103",
        category=ErrorCategory.GATEWAY,
        title="Checkout Unreachable",
        message_template="Could not reach the checkout service: {message}",
        remediation="Check your network connection and try again.",
        is_retryable=True,
    ),
    # System errors (E-4xxx)
    "E-4101": ErrorCode(
        code="E-4101",
        category=ErrorCategory.SYSTEM,
        title="Unexpected Error",
        message_template="Unexpected error: {message}",
        remediation="Reload the checkout. Contact support if it happens again.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
