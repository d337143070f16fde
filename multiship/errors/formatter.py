"""Error formatting utilities.

This module provides:
- MultiShipError exception class for application errors
- Error formatting for user display
- Error grouping to combine the same failure across line items
"""

from dataclasses import dataclass, field

from multiship.errors.registry import get_error


@dataclass
class MultiShipError(Exception):
    """Application error with code, message, and context.

    Attributes:
        code: Error code in E-XXXX format.
        message: Human-readable error message.
        remediation: Action the shopper should take to resolve.
        item_ids: Line items affected by the error.
        is_retryable: Whether the operation can be retried without user action.
        details: Additional context dictionary.
    """

    code: str
    message: str
    remediation: str
    item_ids: list[str] = field(default_factory=list)
    is_retryable: bool = False
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code}: {self.message}"

    @classmethod
    def from_code(cls, code: str, **kwargs: object) -> "MultiShipError":
        """Create error from registry code with context substitution.

        Args:
            code: Error code in E-XXXX format.
            **kwargs: Context values for message and remediation templates.
                Special keys 'item_ids' and 'details' populate the
                corresponding fields rather than the templates.

        Returns:
            MultiShipError instance with formatted message.
        """
        item_ids = kwargs.get("item_ids", [])
        if not isinstance(item_ids, list):
            item_ids = []
        details = kwargs.get("details", {})
        if not isinstance(details, dict):
            details = {}

        error_def = get_error(code)
        if not error_def:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                remediation="Contact support.",
                item_ids=item_ids,
                details=details,
            )

        template_kwargs = {
            k: v for k, v in kwargs.items() if k not in ("item_ids", "details")
        }
        message = error_def.message_template
        remediation = error_def.remediation
        try:
            message = message.format(**template_kwargs)
        except KeyError:
            # Keep template if some placeholders are missing
            pass
        try:
            remediation = remediation.format(**template_kwargs)
        except KeyError:
            pass

        return cls(
            code=error_def.code,
            message=message,
            remediation=remediation,
            is_retryable=error_def.is_retryable,
            item_ids=item_ids,
            details=details,
        )


def format_error(error: MultiShipError, include_remediation: bool = True) -> str:
    """Format error for display to the shopper.

    Args:
        error: The MultiShipError to format.
        include_remediation: Whether to include remediation steps.

    Returns:
        Multi-line formatted string suitable for display.
    """
    lines = [f"{error.code}: {error.message}"]

    if error.item_ids:
        if len(error.item_ids) == 1:
            lines.append(f"  Item: {error.item_ids[0]}")
        else:
            ids = ", ".join(error.item_ids[:10])
            if len(error.item_ids) > 10:
                ids += f" (and {len(error.item_ids) - 10} more)"
            lines.append(f"  Items: {ids}")

    if include_remediation:
        lines.append(f"  Action: {error.remediation}")

    return "\n".join(lines)


def group_errors(errors: list[MultiShipError]) -> list[MultiShipError]:
    """Group errors by code and message, combining affected items.

    A reconciliation pass can fail the same way for several consignments;
    those collapse into one error listing every affected item.

    Args:
        errors: List of MultiShipError objects to group.

    Returns:
        List of grouped MultiShipError objects with combined item ids.
    """
    groups: dict[str, MultiShipError] = {}

    for error in errors:
        key = f"{error.code}|{error.message}"
        if key in groups:
            groups[key].item_ids.extend(error.item_ids)
        else:
            groups[key] = MultiShipError(
                code=error.code,
                message=error.message,
                remediation=error.remediation,
                item_ids=list(error.item_ids),
                is_retryable=error.is_retryable,
                details=error.details.copy(),
            )

    result = list(groups.values())
    for error in result:
        error.item_ids = list(dict.fromkeys(error.item_ids))
    return result
