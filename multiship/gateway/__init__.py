"""Remote checkout gateway: models, protocol, and the Storefront HTTP client."""

from multiship.gateway.models import (
    Address,
    Cart,
    Checkout,
    Consignment,
    LineItem,
    ShippingOption,
)
from multiship.gateway.protocol import (
    CheckoutGateway,
    ConsignmentRequest,
    GatewayError,
)

__all__ = [
    "Address",
    "Cart",
    "Checkout",
    "Consignment",
    "LineItem",
    "ShippingOption",
    "CheckoutGateway",
    "ConsignmentRequest",
    "GatewayError",
]
