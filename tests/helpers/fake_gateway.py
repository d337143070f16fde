"""In-memory CheckoutGateway for wizard and reconciler tests.

Simulates the platform's consignment endpoints closely enough to exercise
restoration and cleanup: consignments are quoted a fixed option list,
changing an address clears the selected option, and ``evict_incomplete``
mimics the platform dropping consignments left without an option.
"""

from dataclasses import dataclass, field
from typing import Any

from multiship.gateway.models import (
    Address,
    Cart,
    Checkout,
    Consignment,
    LineItem,
    ShippingOption,
)
from multiship.gateway.protocol import ConsignmentRequest, GatewayError


def make_address(**overrides: Any) -> Address:
    """A complete US address; override fields as needed."""
    data = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address1": "12 Analytical Way",
        "city": "Austin",
        "state_or_province": "Texas",
        "state_or_province_code": "TX",
        "country_code": "US",
        "postal_code": "78701",
        "phone": "5125550100",
    }
    data.update(overrides)
    return Address(**data)


DEFAULT_OPTIONS = [
    ShippingOption(id="opt-ground", description="Ground", cost=5.0, is_recommended=True),
    ShippingOption(id="opt-express", description="Express", cost=15.0),
]


@dataclass
class GatewayCall:
    """Record of a call made to the fake gateway."""

    method: str
    args: dict[str, Any] = field(default_factory=dict)


class FakeGateway:
    """Configurable fake of the Storefront checkout API.

    Tracks every call for verification and can be told to fail the next
    N calls of a method.
    """

    def __init__(
        self,
        items: list[LineItem] | None = None,
        checkout_id: str = "chk-1",
        cart_id: str = "cart-1",
        options: list[ShippingOption] | None = None,
    ) -> None:
        self.checkout_id = checkout_id
        self.cart_id = cart_id
        self.items: list[LineItem] = list(items or [])
        self.options = list(options if options is not None else DEFAULT_OPTIONS)
        self.customer_message = ""
        self.line_item_options: dict[str, dict[str, str]] = {}
        self.gift_messages: dict[str, str] = {}
        self._consignments: dict[str, Consignment] = {}
        self._next_id = 1
        self._failures: dict[str, list[GatewayError]] = {}
        self.call_history: list[GatewayCall] = []

    # --- Test configuration -------------------------------------------

    def add_consignment(
        self,
        line_item_ids: list[str],
        address: Address | None = None,
        option_id: str | None = None,
        consignment_id: str | None = None,
    ) -> Consignment:
        """Seed a consignment directly, bypassing call history."""
        cid = consignment_id or self._new_id()
        consignment = Consignment(
            id=cid,
            line_item_ids=list(line_item_ids),
            shipping_address=address or make_address(),
            available_shipping_options=list(self.options),
            selected_shipping_option=self._option(option_id) if option_id else None,
        )
        self._consignments[cid] = consignment
        return consignment

    def fail(self, method: str, message: str = "Service unavailable",
             times: int = 1, status_code: int = 503) -> None:
        """Make the next ``times`` calls of ``method`` raise GatewayError."""
        self._failures.setdefault(method, []).extend(
            GatewayError(message, status_code) for _ in range(times)
        )

    def strip_option(self, consignment_id: str) -> None:
        """Drop a consignment's selected option, as the platform does."""
        consignment = self._consignments[consignment_id]
        self._consignments[consignment_id] = consignment.model_copy(
            update={"selected_shipping_option": None}
        )

    def evict_incomplete(self) -> list[str]:
        """Delete every consignment without a selected option."""
        evicted = [cid for cid, c in self._consignments.items() if not c.is_complete]
        for cid in evicted:
            del self._consignments[cid]
        return evicted

    def consignment(self, consignment_id: str) -> Consignment | None:
        return self._consignments.get(consignment_id)

    @property
    def consignments(self) -> list[Consignment]:
        return [c.model_copy(deep=True) for c in self._consignments.values()]

    def calls(self, method: str) -> list[GatewayCall]:
        return [c for c in self.call_history if c.method == method]

    def reset_calls(self) -> None:
        self.call_history.clear()

    # --- CheckoutGateway ----------------------------------------------

    async def __aenter__(self) -> "FakeGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    async def get_checkout(self, checkout_id: str) -> Checkout:
        self._record("get_checkout", checkout_id=checkout_id)
        return Checkout(
            id=self.checkout_id,
            cart=Cart(id=self.cart_id, physical_items=list(self.items)),
            consignments=self.consignments,
            customer_message=self.customer_message,
        )

    async def list_consignments(self, checkout_id: str) -> list[Consignment]:
        self._record("list_consignments", checkout_id=checkout_id)
        return self.consignments

    async def create_consignment(
        self, checkout_id: str, address: Address, line_item_id: str, quantity: int
    ) -> list[Consignment]:
        self._record(
            "create_consignment",
            checkout_id=checkout_id,
            address=address,
            line_item_id=line_item_id,
            quantity=quantity,
        )
        self.add_consignment([line_item_id], address=address)
        return self.consignments

    async def create_consignments(
        self, checkout_id: str, requests: list[ConsignmentRequest]
    ) -> list[Consignment]:
        self._record("create_consignments", checkout_id=checkout_id, requests=list(requests))
        for request in requests:
            self.add_consignment([request.line_item_id], address=request.address)
        return self.consignments

    async def update_consignment_address(
        self,
        checkout_id: str,
        consignment_id: str,
        address: Address,
        line_item_id: str,
        quantity: int,
    ) -> list[Consignment]:
        self._record(
            "update_consignment_address",
            checkout_id=checkout_id,
            consignment_id=consignment_id,
            address=address,
            line_item_id=line_item_id,
            quantity=quantity,
        )
        consignment = self._require(consignment_id)
        self._consignments[consignment_id] = consignment.model_copy(update={
            "shipping_address": address,
            "line_item_ids": [line_item_id],
            "selected_shipping_option": None,
            "available_shipping_options": list(self.options),
        })
        return self.consignments

    async def set_shipping_option(
        self, checkout_id: str, consignment_id: str, option_id: str
    ) -> list[Consignment]:
        self._record(
            "set_shipping_option",
            checkout_id=checkout_id,
            consignment_id=consignment_id,
            option_id=option_id,
        )
        consignment = self._require(consignment_id)
        option = self._option(option_id)
        if option is None:
            raise GatewayError(f"Shipping option '{option_id}' is not available", 422)
        self._consignments[consignment_id] = consignment.model_copy(
            update={"selected_shipping_option": option}
        )
        return self.consignments

    async def delete_consignment(self, checkout_id: str, consignment_id: str) -> None:
        self._record("delete_consignment", checkout_id=checkout_id, consignment_id=consignment_id)
        self._require(consignment_id)
        del self._consignments[consignment_id]

    async def set_line_item_option(
        self, cart_id: str, line_item: LineItem, option_id: str, value: str
    ) -> None:
        self._record(
            "set_line_item_option",
            cart_id=cart_id,
            line_item_id=line_item.platform_id,
            quantity=line_item.platform_quantity,
            option_id=option_id,
            value=value,
        )
        self.line_item_options.setdefault(line_item.platform_id, {})[option_id] = value
        # The cart item endpoint rewrites the line with the quantity it is sent
        self.items = [
            item.model_copy(update={"quantity": line_item.platform_quantity})
            if item.id == line_item.platform_id else item
            for item in self.items
        ]

    async def set_gift_message(self, cart_id: str, line_item_id: str, message: str) -> None:
        self._record("set_gift_message", cart_id=cart_id, line_item_id=line_item_id, message=message)
        self.gift_messages[line_item_id] = message

    async def touch_checkout(self, checkout_id: str, customer_message: str) -> None:
        self._record("touch_checkout", checkout_id=checkout_id, customer_message=customer_message)

    # --- Internals ----------------------------------------------------

    def _record(self, method: str, **args: Any) -> None:
        self.call_history.append(GatewayCall(method=method, args=args))
        queued = self._failures.get(method)
        if queued:
            raise queued.pop(0)

    def _require(self, consignment_id: str) -> Consignment:
        consignment = self._consignments.get(consignment_id)
        if consignment is None:
            raise GatewayError(f"Consignment '{consignment_id}' not found", 404)
        return consignment

    def _option(self, option_id: str) -> ShippingOption | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    def _new_id(self) -> str:
        while f"cons-{self._next_id}" in self._consignments:
            self._next_id += 1
        cid = f"cons-{self._next_id}"
        self._next_id += 1
        return cid
