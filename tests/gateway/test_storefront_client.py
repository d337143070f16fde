"""Tests for StorefrontClient with mocked HTTP responses."""

import json

import httpx
import pytest

from multiship.gateway.http_client import StorefrontClient
from multiship.gateway.models import Address, LineItem
from multiship.gateway.protocol import ConsignmentRequest, GatewayError

BASE_URL = "https://shop.example.com"

CONSIGNMENT = {
    "id": "cons-1",
    "lineItemIds": [42],
    "shippingAddress": {
        "firstName": "Ada", "lastName": "Lovelace", "address1": "12 Analytical Way",
        "city": "Austin", "stateOrProvinceCode": "TX", "countryCode": "US",
        "postalCode": "78701", "phone": None,
    },
    "availableShippingOptions": [
        {"id": "opt-ground", "description": "Ground", "cost": 5, "isRecommended": True},
    ],
    "selectedShippingOption": None,
}


class FakeTransport(httpx.AsyncBaseTransport):
    """Mock transport that returns canned responses and records requests."""

    def __init__(self, responses: dict[tuple[str, str], tuple[int, object]]):
        self._responses = responses
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request):
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self._responses:
            status, body = self._responses[key]
            if isinstance(body, str):
                return httpx.Response(status, text=body, request=request)
            return httpx.Response(status, json=body, request=request)
        return httpx.Response(404, json={"title": "Not Found"}, request=request)


def _make_client(responses: dict, **kwargs) -> tuple[StorefrontClient, FakeTransport]:
    """Create StorefrontClient with mocked transport."""
    client = StorefrontClient(base_url=BASE_URL, **kwargs)
    transport = FakeTransport(responses)
    client._client = httpx.AsyncClient(transport=transport, base_url=BASE_URL)
    return client, transport


def _address() -> Address:
    return Address(
        first_name="Ada", last_name="Lovelace", address1="12 Analytical Way",
        city="Austin", state_or_province_code="TX", country_code="US", postal_code="78701",
    )


class TestReads:
    """Tests for checkout and consignment reads."""

    @pytest.mark.asyncio
    async def test_get_checkout_parses_cart_and_consignments(self):
        client, transport = _make_client({
            ("GET", "/api/storefront/checkouts/chk-1"): (200, {
                "id": "chk-1",
                "cart": {
                    "id": "cart-1",
                    "lineItems": {"physicalItems": [
                        {"id": 42, "name": "Mug", "quantity": 3, "productId": 7,
                         "giftWrapping": {"message": "Happy birthday"}},
                    ]},
                },
                "consignments": [CONSIGNMENT],
                "customerMessage": None,
            }),
        })
        checkout = await client.get_checkout("chk-1")
        assert checkout.cart.id == "cart-1"
        assert checkout.cart.physical_items[0].id == "42"
        assert checkout.cart.physical_items[0].gift_message == "Happy birthday"
        assert checkout.consignments[0].line_item_ids == ["42"]
        assert checkout.customer_message == ""
        assert "include=cart.lineItems.physicalItems.options" in str(transport.requests[0].url)

    @pytest.mark.asyncio
    async def test_list_consignments(self):
        client, _ = _make_client({
            ("GET", "/api/storefront/checkouts/chk-1"): (200, {
                "id": "chk-1", "cart": {"id": "cart-1"}, "consignments": [CONSIGNMENT],
            }),
        })
        consignments = await client.list_consignments("chk-1")
        assert len(consignments) == 1
        assert consignments[0].is_complete is False
        assert consignments[0].available_shipping_options[0].is_recommended is True
        assert consignments[0].shipping_address.phone == ""

    @pytest.mark.asyncio
    async def test_missing_consignments_is_empty(self):
        client, _ = _make_client({
            ("GET", "/api/storefront/checkouts/chk-1"): (200, {
                "id": "chk-1", "cart": {"id": "cart-1"}, "consignments": None,
            }),
        })
        assert await client.list_consignments("chk-1") == []


class TestMutations:
    """Tests for consignment and cart writes."""

    @pytest.mark.asyncio
    async def test_create_consignment_posts_list_body(self):
        client, transport = _make_client({
            ("POST", "/api/storefront/checkouts/chk-1/consignments"): (
                200, {"id": "chk-1", "consignments": [CONSIGNMENT]}
            ),
        })
        consignments = await client.create_consignment("chk-1", _address(), "42", 3)
        assert consignments[0].id == "cons-1"
        body = json.loads(transport.requests[0].content)
        assert body[0]["lineItems"] == [{"itemId": "42", "quantity": 3}]
        assert body[0]["address"]["firstName"] == "Ada"
        assert "email" not in body[0]["address"]

    @pytest.mark.asyncio
    async def test_create_consignments_sends_every_request(self):
        client, transport = _make_client({
            ("POST", "/api/storefront/checkouts/chk-1/consignments"): (
                200, {"id": "chk-1", "consignments": []}
            ),
        })
        requests = [ConsignmentRequest(_address(), "42", 1) for _ in range(3)]
        await client.create_consignments("chk-1", requests)
        body = json.loads(transport.requests[0].content)
        assert len(body) == 3
        assert all(r["lineItems"][0]["quantity"] == 1 for r in body)

    @pytest.mark.asyncio
    async def test_set_shipping_option_body(self):
        client, transport = _make_client({
            ("PUT", "/api/storefront/checkouts/chk-1/consignments/cons-1"): (
                200, {"id": "chk-1", "consignments": [CONSIGNMENT]}
            ),
        })
        await client.set_shipping_option("chk-1", "cons-1", "opt-ground")
        assert json.loads(transport.requests[0].content) == {"shippingOptionId": "opt-ground"}

    @pytest.mark.asyncio
    async def test_update_address_body(self):
        client, transport = _make_client({
            ("PUT", "/api/storefront/checkouts/chk-1/consignments/cons-1"): (
                200, {"id": "chk-1", "consignments": [CONSIGNMENT]}
            ),
        })
        await client.update_consignment_address("chk-1", "cons-1", _address(), "42", 1)
        body = json.loads(transport.requests[0].content)
        assert body["lineItems"] == [{"itemId": "42", "quantity": 1}]
        assert body["address"]["city"] == "Austin"

    @pytest.mark.asyncio
    async def test_delete_consignment_empty_body(self):
        client, transport = _make_client({
            ("DELETE", "/api/storefront/checkouts/chk-1/consignments/cons-1"): (204, ""),
        })
        assert await client.delete_consignment("chk-1", "cons-1") is None
        assert transport.requests[0].method == "DELETE"

    @pytest.mark.asyncio
    async def test_set_line_item_option_uses_cart_line(self):
        client, transport = _make_client({
            ("PUT", "/api/storefront/carts/cart-1/items/42"): (200, {"id": "cart-1"}),
        })
        sibling = LineItem(id="42#2", quantity=1, product_id=7, remote_id="42", cart_quantity=3)
        await client.set_line_item_option("cart-1", sibling, "opt-date", "05/01/2026")
        body = json.loads(transport.requests[0].content)
        assert body == {"lineItem": {
            "productId": 7,
            "quantity": 3,
            "optionSelections": [{"optionId": "opt-date", "optionValue": "05/01/2026"}],
        }}

    @pytest.mark.asyncio
    async def test_touch_checkout(self):
        client, transport = _make_client({
            ("PUT", "/api/storefront/checkouts/chk-1"): (200, {"id": "chk-1"}),
        })
        await client.touch_checkout("chk-1", "Leave at door")
        assert json.loads(transport.requests[0].content) == {"customerMessage": "Leave at door"}

    @pytest.mark.asyncio
    async def test_gift_message_posts_to_configured_url(self):
        client, transport = _make_client(
            {("POST", "/gift-messages"): (200, {"ok": True})},
            gift_message_url="/gift-messages",
        )
        await client.set_gift_message("cart-1", "42", "Enjoy")
        assert json.loads(transport.requests[0].content) == {
            "cartId": "cart-1", "itemId": "42", "message": "Enjoy",
        }

    @pytest.mark.asyncio
    async def test_gift_message_without_url_fails(self):
        client, transport = _make_client({})
        with pytest.raises(GatewayError, match="not configured"):
            await client.set_gift_message("cart-1", "42", "Enjoy")
        assert transport.requests == []


class TestErrors:
    """Tests for error translation."""

    @pytest.mark.asyncio
    async def test_title_becomes_message(self):
        client, _ = _make_client({
            ("PUT", "/api/storefront/checkouts/chk-1/consignments/cons-1"): (
                422, {"status": 422, "title": "Shipping option is invalid"}
            ),
        })
        with pytest.raises(GatewayError) as exc_info:
            await client.set_shipping_option("chk-1", "cons-1", "bogus")
        assert exc_info.value.status_code == 422
        assert exc_info.value.message == "Shipping option is invalid"

    @pytest.mark.asyncio
    async def test_detail_used_without_title(self):
        client, _ = _make_client({
            ("DELETE", "/api/storefront/checkouts/chk-1/consignments/cons-1"): (
                500, {"detail": "Internal error"}
            ),
        })
        with pytest.raises(GatewayError, match="Internal error"):
            await client.delete_consignment("chk-1", "cons-1")

    @pytest.mark.asyncio
    async def test_non_json_error_body(self):
        client, _ = _make_client({
            ("GET", "/api/storefront/checkouts/chk-1"): (502, "Bad Gateway"),
        })
        with pytest.raises(GatewayError) as exc_info:
            await client.list_consignments("chk-1")
        assert exc_info.value.status_code == 502
        assert "Bad Gateway" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        class BrokenTransport(httpx.AsyncBaseTransport):
            async def handle_async_request(self, request):
                raise httpx.ConnectError("connection refused", request=request)

        client = StorefrontClient(base_url=BASE_URL)
        client._client = httpx.AsyncClient(transport=BrokenTransport(), base_url=BASE_URL)
        with pytest.raises(GatewayError, match="Could not reach"):
            await client.list_consignments("chk-1")

    @pytest.mark.asyncio
    async def test_unopened_client_raises(self):
        client = StorefrontClient(base_url=BASE_URL)
        with pytest.raises(GatewayError, match="not open"):
            await client.list_consignments("chk-1")


class TestContextManager:
    """Tests for client lifecycle."""

    @pytest.mark.asyncio
    async def test_aenter_opens_and_aexit_closes(self):
        client = StorefrontClient(base_url=BASE_URL + "/", headers={"X-Test": "1"})
        async with client as opened:
            assert opened is client
            assert client._client is not None
            assert client._client.headers["X-Test"] == "1"
            assert str(client._client.base_url).rstrip("/") == BASE_URL
        assert client._client is None
