"""Tests for address completeness checks."""

from multiship.services.address_validation import (
    DEFAULT_REQUIRED_FIELDS,
    RequiredFieldsValidator,
    missing_fields,
)
from tests.helpers import make_address


class TestMissingFields:
    """Tests for missing_fields()."""

    def test_complete_address(self):
        assert missing_fields(make_address(), DEFAULT_REQUIRED_FIELDS) == []

    def test_blank_fields_reported_in_order(self):
        address = make_address(first_name="  ", postal_code="")
        assert missing_fields(address, DEFAULT_REQUIRED_FIELDS) == ["first_name", "postal_code"]

    def test_state_required_for_us(self):
        address = make_address(state_or_province="", state_or_province_code="")
        assert missing_fields(address, DEFAULT_REQUIRED_FIELDS) == ["state_or_province_code"]

    def test_state_optional_elsewhere(self):
        address = make_address(
            country_code="GB", state_or_province="", state_or_province_code="",
            city="London", postal_code="SW1A 1AA",
        )
        assert missing_fields(address, DEFAULT_REQUIRED_FIELDS) == []

    def test_unknown_field_counts_as_missing(self):
        assert missing_fields(make_address(), ["address1", "floor_number"]) == ["floor_number"]


def test_validator_uses_configured_fields():
    validator = RequiredFieldsValidator()
    address = make_address(phone="")
    assert validator.is_valid_address(address, list(DEFAULT_REQUIRED_FIELDS)) is True
    assert validator.is_valid_address(address, ["phone"]) is False
