"""Models for the remote checkout resources consumed by multiship.

Field names are snake_case; aliases match the Storefront API's camelCase
JSON so responses validate directly and requests dump with ``by_alias``.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Address(BaseModel):
    """Shipping address attached to a consignment."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    company: str = Field(default="", alias="company")
    address1: str = Field(default="", alias="address1")
    address2: str = Field(default="", alias="address2")
    city: str = Field(default="", alias="city")
    state_or_province: str = Field(default="", alias="stateOrProvince")
    state_or_province_code: str = Field(default="", alias="stateOrProvinceCode")
    country_code: str = Field(default="", alias="countryCode")
    postal_code: str = Field(default="", alias="postalCode")
    phone: str = Field(default="", alias="phone")
    email: str | None = Field(default=None, alias="email")

    @field_validator("*", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any, info) -> Any:
        """The API sends null for blank fields; keep them as empty strings."""
        if value is None and info.field_name != "email":
            return ""
        return value

    @property
    def address_key(self) -> str:
        """Identity of the physical destination, ignoring phone and company."""
        return "|".join([
            self.first_name,
            self.last_name,
            self.address1,
            self.city,
            self.state_or_province_code,
            self.postal_code,
            self.country_code,
        ])

    def to_api(self) -> dict[str, Any]:
        """Serialize to the Storefront API request shape."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ShippingOption(BaseModel):
    """Carrier option quoted for a consignment's address."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Shipping option identifier")
    description: str = Field(default="", description="Display name")
    cost: float = Field(default=0.0, description="Shipping cost")
    type: str | None = Field(default=None, description="Carrier/method type")
    transit_time: str | None = Field(default=None, alias="transitTime")
    is_recommended: bool = Field(default=False, alias="isRecommended")


class Consignment(BaseModel):
    """A remote binding of line items to an address and shipping option."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = Field(default=None, description="Assigned on creation")
    line_item_ids: list[str] = Field(default_factory=list, alias="lineItemIds")
    shipping_address: Address | None = Field(default=None, alias="shippingAddress")
    selected_shipping_option: ShippingOption | None = Field(
        default=None, alias="selectedShippingOption"
    )
    available_shipping_options: list[ShippingOption] = Field(
        default_factory=list, alias="availableShippingOptions"
    )

    @model_validator(mode="before")
    @classmethod
    def _accept_address_key(cls, data: Any) -> Any:
        # Some responses name the field "address" instead of "shippingAddress"
        if isinstance(data, dict) and "shippingAddress" not in data and "address" in data:
            data = {**data, "shippingAddress": data["address"]}
        return data

    @field_validator("line_item_ids", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        if value is None:
            return []
        return [str(v) for v in value]

    @field_validator("available_shipping_options", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return value or []

    @property
    def is_complete(self) -> bool:
        """True when a shipping option is selected."""
        return self.selected_shipping_option is not None

    @property
    def is_multi_item(self) -> bool:
        """True when the consignment covers more than one line item."""
        return len(set(self.line_item_ids)) > 1

    def covers(self, line_item_id: str) -> bool:
        """Return True if this consignment includes the given line item."""
        return str(line_item_id) in self.line_item_ids


class LineItem(BaseModel):
    """A physical cart line item.

    ``remote_id`` is the platform's line item id. It differs from ``id``
    only for the siblings produced by splitting one line item, which share
    the platform id but need distinct identities in the wizard.
    ``cart_quantity`` is the quantity of the cart line they came from, which
    the cart item endpoint expects back on every update.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Line item identifier")
    name: str = Field(default="", description="Product name")
    quantity: int = Field(default=1, ge=1, description="Units in this line")
    product_id: int | None = Field(default=None, alias="productId")
    gift_message: str | None = Field(default=None, alias="giftMessage")
    remote_id: str | None = Field(default=None, alias="remoteId")
    cart_quantity: int | None = Field(default=None, alias="cartQuantity")

    @model_validator(mode="before")
    @classmethod
    def _extract_gift_wrapping(cls, data: Any) -> Any:
        if isinstance(data, dict) and "giftMessage" not in data:
            wrapping = data.get("giftWrapping") or {}
            if isinstance(wrapping, dict) and wrapping.get("message"):
                data = {**data, "giftMessage": wrapping["message"]}
        return data

    @field_validator("id", "remote_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        return None if value is None else str(value)

    @property
    def platform_id(self) -> str:
        """Line item id as known to the checkout platform."""
        return self.remote_id or self.id

    @property
    def platform_quantity(self) -> int:
        """Quantity of the platform cart line this item belongs to."""
        return self.cart_quantity or self.quantity


class Cart(BaseModel):
    """The cart behind a checkout, reduced to its physical items."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Cart identifier")
    physical_items: list[LineItem] = Field(default_factory=list, alias="physicalItems")

    @model_validator(mode="before")
    @classmethod
    def _flatten_line_items(cls, data: Any) -> Any:
        if isinstance(data, dict) and "lineItems" in data:
            if "physicalItems" not in data and "physical_items" not in data:
                line_items = data.get("lineItems") or {}
                data = {**data, "physicalItems": line_items.get("physicalItems", [])}
        return data


class Checkout(BaseModel):
    """Checkout snapshot with its cart and consignments."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Checkout identifier")
    cart: Cart
    consignments: list[Consignment] = Field(default_factory=list)
    customer_message: str = Field(default="", alias="customerMessage")

    @field_validator("consignments", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return value or []

    @field_validator("customer_message", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value or ""
