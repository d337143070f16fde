"""Address completeness checks consumed by the wizard.

The wizard only needs a yes/no answer plus the list of missing fields for
the error message. Field-format rules and autocomplete belong to the host
checkout; ``RequiredFieldsValidator`` covers the presence check the wizard
needs when no host validator is plugged in.
"""

from typing import Protocol

from multiship.gateway.models import Address

# Fields every shipping address must carry before a consignment is created
DEFAULT_REQUIRED_FIELDS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "address1",
    "city",
    "country_code",
    "postal_code",
)

# Destination countries where a state or province code is mandatory
STATE_REQUIRED_COUNTRIES: frozenset[str] = frozenset({"US", "CA", "AU"})


class AddressValidator(Protocol):
    """Host-provided address validation."""

    def is_valid_address(self, address: Address, required_fields: list[str]) -> bool: ...


def missing_fields(address: Address, required_fields: list[str] | tuple[str, ...]) -> list[str]:
    """Return the required fields that are blank on ``address``.

    Unknown field names are reported as missing so a misconfigured
    requirement list fails loudly instead of passing every address.
    """
    missing = []
    for name in required_fields:
        value = getattr(address, name, None)
        if value is None or not str(value).strip():
            missing.append(name)
    if (
        address.country_code.upper() in STATE_REQUIRED_COUNTRIES
        and not address.state_or_province_code.strip()
        and not address.state_or_province.strip()
        and "state_or_province_code" not in missing
    ):
        missing.append("state_or_province_code")
    return missing


class RequiredFieldsValidator:
    """Presence-only validator."""

    def is_valid_address(self, address: Address, required_fields: list[str]) -> bool:
        return not missing_fields(address, required_fields)
