"""CheckoutGateway protocol and request models.

Defines the interface the reconciler and wizard are written against. The
Storefront HTTP client implements it for production; tests substitute an
in-memory fake. Every implementation reports failures as GatewayError.
"""

from dataclasses import dataclass
from typing import Protocol

from multiship.gateway.models import (
    Address,
    Checkout,
    Consignment,
    LineItem,
)


class GatewayError(Exception):
    """Transport-neutral error raised by CheckoutGateway implementations.

    The HTTP client raises this on non-2xx responses and transport
    failures; the message is the human-readable text from the response
    body when there is one.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass
class ConsignmentRequest:
    """One consignment to create: an address for a quantity of one line item."""

    address: Address
    line_item_id: str
    quantity: int

    def to_api(self) -> dict:
        """Serialize to the Storefront API consignment request shape."""
        return {
            "address": self.address.to_api(),
            "lineItems": [{"itemId": self.line_item_id, "quantity": self.quantity}],
        }


class CheckoutGateway(Protocol):
    """Remote checkout operations consumed by multiship.

    Mutating consignment calls return the checkout's full consignment list
    after the change, as the Storefront API does.
    """

    async def get_checkout(self, checkout_id: str) -> Checkout:
        """Fetch the checkout with its cart items and consignments."""
        ...

    async def list_consignments(self, checkout_id: str) -> list[Consignment]:
        """Fetch the checkout's consignments with available options."""
        ...

    async def create_consignment(
        self, checkout_id: str, address: Address, line_item_id: str, quantity: int
    ) -> list[Consignment]:
        """Create one consignment for a quantity of a single line item."""
        ...

    async def create_consignments(
        self, checkout_id: str, requests: list[ConsignmentRequest]
    ) -> list[Consignment]:
        """Create several consignments in a single request."""
        ...

    async def update_consignment_address(
        self,
        checkout_id: str,
        consignment_id: str,
        address: Address,
        line_item_id: str,
        quantity: int,
    ) -> list[Consignment]:
        """Replace the address and line item of an existing consignment."""
        ...

    async def set_shipping_option(
        self, checkout_id: str, consignment_id: str, option_id: str
    ) -> list[Consignment]:
        """Select a shipping option on a consignment."""
        ...

    async def delete_consignment(self, checkout_id: str, consignment_id: str) -> None:
        """Delete a consignment."""
        ...

    async def set_line_item_option(
        self, cart_id: str, line_item: LineItem, option_id: str, value: str
    ) -> None:
        """Set a product option value on a cart line item."""
        ...

    async def set_gift_message(
        self, cart_id: str, line_item_id: str, message: str
    ) -> None:
        """Attach a gift message to a cart line item."""
        ...

    async def touch_checkout(self, checkout_id: str, customer_message: str) -> None:
        """Write the checkout back unchanged so the platform recomputes totals."""
        ...
