"""Storefront API implementation of CheckoutGateway.

Thin wrapper around httpx that talks to the platform's storefront checkout
endpoints. All methods map to existing REST endpoints. Error responses and
transport failures raise GatewayError so the reconciler and wizard can
handle every failure through one exception type.
"""

import json
import logging
from typing import Any

import httpx

from multiship.gateway.models import Address, Checkout, Consignment, LineItem
from multiship.gateway.protocol import ConsignmentRequest, GatewayError
from multiship.utils.redaction import redact_for_logging

logger = logging.getLogger(__name__)

CHECKOUT_INCLUDE = "cart.lineItems.physicalItems.options,consignments.availableShippingOptions"
CONSIGNMENT_INCLUDE = "consignments.availableShippingOptions"


class StorefrontClient:
    """CheckoutGateway implementation over the Storefront REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        gift_message_url: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        """Initialize with the storefront base URL.

        Args:
            base_url: Storefront origin, e.g. ``https://shop.example.com``.
            timeout: Transport timeout in seconds for every request.
            gift_message_url: Endpoint accepting gift message updates.
                Gift messages fail with GatewayError when unset.
            headers: Extra headers sent with every request.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._gift_message_url = gift_message_url
        self._headers = headers or {}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        """Open httpx async client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                **self._headers,
            },
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close httpx async client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _raise_for_status(self, resp: httpx.Response) -> None:
        """Raise GatewayError on non-2xx responses.

        Args:
            resp: httpx.Response to check.

        Raises:
            GatewayError: On non-2xx status codes, carrying the body's
                ``title`` (Storefront API) or ``detail`` message.
        """
        if resp.status_code >= 400:
            try:
                body = resp.json()
                detail = body.get("title") or body.get("detail") or resp.text
            except Exception:
                detail = resp.text or resp.reason_phrase
            raise GatewayError(message=str(detail), status_code=resp.status_code)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        body: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (or None)."""
        if self._client is None:
            raise GatewayError("Storefront client is not open")
        if body is not None and logger.isEnabledFor(logging.DEBUG):
            loggable = (
                [redact_for_logging(b) for b in body] if isinstance(body, list)
                else redact_for_logging(body)
            )
            logger.debug("storefront_request method=%s url=%s body=%s", method, url, json.dumps(loggable))
        try:
            resp = await self._client.request(method, url, params=params, json=body)
        except httpx.RequestError as exc:
            raise GatewayError(f"Could not reach the checkout service: {exc}") from exc
        self._raise_for_status(resp)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None

    @staticmethod
    def _consignments_from(data: Any) -> list[Consignment]:
        if not isinstance(data, dict):
            return []
        return [Consignment.model_validate(c) for c in data.get("consignments") or []]

    def _checkout_path(self, checkout_id: str) -> str:
        return f"/api/storefront/checkouts/{checkout_id}"

    async def get_checkout(self, checkout_id: str) -> Checkout:
        """Fetch checkout via GET /api/storefront/checkouts/{id}.

        Args:
            checkout_id: The checkout to read.

        Returns:
            Checkout with cart physical items and consignments.
        """
        data = await self._request(
            "GET", self._checkout_path(checkout_id), params={"include": CHECKOUT_INCLUDE}
        )
        return Checkout.model_validate(data)

    async def list_consignments(self, checkout_id: str) -> list[Consignment]:
        """Fetch consignments via the checkout resource.

        Args:
            checkout_id: The checkout to read.

        Returns:
            Current consignments with their available shipping options.
        """
        data = await self._request(
            "GET", self._checkout_path(checkout_id), params={"include": CONSIGNMENT_INCLUDE}
        )
        return self._consignments_from(data)

    async def create_consignment(
        self, checkout_id: str, address: Address, line_item_id: str, quantity: int
    ) -> list[Consignment]:
        """Create one consignment via POST .../consignments."""
        return await self.create_consignments(
            checkout_id, [ConsignmentRequest(address, line_item_id, quantity)]
        )

    async def create_consignments(
        self, checkout_id: str, requests: list[ConsignmentRequest]
    ) -> list[Consignment]:
        """Create consignments via POST .../consignments.

        Args:
            checkout_id: The checkout to modify.
            requests: One entry per consignment to create.

        Returns:
            The checkout's consignment list after creation.
        """
        data = await self._request(
            "POST",
            f"{self._checkout_path(checkout_id)}/consignments",
            params={"include": CONSIGNMENT_INCLUDE},
            body=[r.to_api() for r in requests],
        )
        return self._consignments_from(data)

    async def update_consignment_address(
        self,
        checkout_id: str,
        consignment_id: str,
        address: Address,
        line_item_id: str,
        quantity: int,
    ) -> list[Consignment]:
        """Replace address and line item via PUT .../consignments/{cid}."""
        data = await self._request(
            "PUT",
            f"{self._checkout_path(checkout_id)}/consignments/{consignment_id}",
            params={"include": CONSIGNMENT_INCLUDE},
            body=ConsignmentRequest(address, line_item_id, quantity).to_api(),
        )
        return self._consignments_from(data)

    async def set_shipping_option(
        self, checkout_id: str, consignment_id: str, option_id: str
    ) -> list[Consignment]:
        """Select a shipping option via PUT .../consignments/{cid}."""
        data = await self._request(
            "PUT",
            f"{self._checkout_path(checkout_id)}/consignments/{consignment_id}",
            params={"include": CONSIGNMENT_INCLUDE},
            body={"shippingOptionId": option_id},
        )
        return self._consignments_from(data)

    async def delete_consignment(self, checkout_id: str, consignment_id: str) -> None:
        """Delete a consignment via DELETE .../consignments/{cid}."""
        await self._request(
            "DELETE", f"{self._checkout_path(checkout_id)}/consignments/{consignment_id}"
        )

    async def set_line_item_option(
        self, cart_id: str, line_item: LineItem, option_id: str, value: str
    ) -> None:
        """Set a product option via PUT /api/storefront/carts/{cart}/items/{item}.

        The cart item endpoint requires the product id and quantity
        alongside the option selection. Split siblings send the whole cart
        line's quantity so the update never resizes the line.
        """
        await self._request(
            "PUT",
            f"/api/storefront/carts/{cart_id}/items/{line_item.platform_id}",
            body={
                "lineItem": {
                    "productId": line_item.product_id,
                    "quantity": line_item.platform_quantity,
                    "optionSelections": [
                        {"optionId": option_id, "optionValue": value},
                    ],
                }
            },
        )

    async def set_gift_message(
        self, cart_id: str, line_item_id: str, message: str
    ) -> None:
        """POST a gift message to the configured gift message endpoint."""
        if not self._gift_message_url:
            raise GatewayError("Gift message endpoint is not configured")
        await self._request(
            "POST",
            self._gift_message_url,
            body={"cartId": cart_id, "itemId": line_item_id, "message": message},
        )

    async def touch_checkout(self, checkout_id: str, customer_message: str) -> None:
        """PUT the customer message back so checkout totals are recomputed."""
        await self._request(
            "PUT",
            self._checkout_path(checkout_id),
            body={"customerMessage": customer_message or ""},
        )
