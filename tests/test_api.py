"""
Tests for the HTTP client: envelope unwrapping, error mapping and payload shapes.
"""

import json

import httpx
import pytest

from eatnow.api import NETWORK_ERROR_MESSAGE, ApiClient, order_from_payload
from eatnow.errors import ApiError
from eatnow.models import OrderLine, OrderRequest

ORDER_RECORD = {
    "id": 42,
    "branchId": 1,
    "status": "confirmed",
    "totalPrice": 120000.0,
    "orderTime": "2026-10-18T11:05:00Z",
    "tableNumber": 6,
    "orderItemInfos": [{"branchDishId": 9, "quantity": 2, "unitPrice": 60000}],
}


def _client(handler, token=None):
    return ApiClient("http://backend.test/api", token, transport=httpx.MockTransport(handler))


class TestPayloadMapping:
    def test_order_record(self):
        order = order_from_payload(ORDER_RECORD)

        assert order.order_id == "42"
        assert order.status == "CONFIRMED"
        assert order.total == 120000
        assert order.table_number == 6
        assert order.created_at.tzinfo is not None
        assert order.lines == (OrderLine(dish_id="9", quantity=2, unit_price=60000),)

    def test_malformed_order_record(self):
        with pytest.raises(ApiError, match="Malformed order"):
            order_from_payload({"id": 1})


class TestApiClient:
    @pytest.mark.asyncio
    async def test_unresolved_orders_are_unwrapped(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": [ORDER_RECORD], "message": "ok", "success": True})

        async with _client(handler, token="abc") as api:
            orders = await api.get_unresolved_orders("1")

        assert [o.order_id for o in orders] == ["42"]
        assert seen[0].url.path == "/api/eatnow/orders/branch/1/unresolved"
        assert seen[0].headers["Authorization"] == "Bearer abc"

    @pytest.mark.asyncio
    async def test_error_response_carries_message_and_status(self):
        def handler(request):
            return httpx.Response(
                409,
                json={"message": "Order already completed", "errors": ["status"], "success": False},
            )

        async with _client(handler) as api:
            with pytest.raises(ApiError) as excinfo:
                await api.update_order_status("42", "PREPARING")

        assert excinfo.value.message == "Order already completed"
        assert excinfo.value.status == 409
        assert excinfo.value.errors == ["status"]

    @pytest.mark.asyncio
    async def test_error_without_body_gets_generic_message(self):
        async with _client(lambda request: httpx.Response(500, text="boom")) as api:
            with pytest.raises(ApiError) as excinfo:
                await api.get_branch_menu("1")

        assert excinfo.value.message == "An error occurred"
        assert excinfo.value.status == 500

    @pytest.mark.asyncio
    async def test_transport_failure_is_a_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as api:
            with pytest.raises(ApiError) as excinfo:
                await api.get_branch_dish("9")

        assert excinfo.value.message == NETWORK_ERROR_MESSAGE
        assert excinfo.value.status == 0

    @pytest.mark.asyncio
    async def test_status_update_sends_target_status(self):
        bodies = []

        def handler(request):
            bodies.append((request.method, request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={"data": dict(ORDER_RECORD, status="PREPARING")})

        async with _client(handler) as api:
            updated = await api.update_order_status("42", "PREPARING")

        assert updated.status == "PREPARING"
        assert bodies == [("PUT", "/api/eatnow/orders/42/status", {"status": "PREPARING"})]

    @pytest.mark.asyncio
    async def test_create_order_returns_new_id(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"data": {"id": 77}})

        request = OrderRequest(
            branch_id="1",
            payment_method="cash",
            lines=(OrderLine(dish_id="9", quantity=2, unit_price=60000),),
            total_price=120000,
            table_number=3,
        )
        async with _client(handler) as api:
            order_id = await api.create_order(request)

        assert order_id == "77"
        assert bodies[0]["items"] == [{"branchDishId": "9", "quantity": 2, "unitPrice": 60000}]
        assert bodies[0]["totalPrice"] == 120000

    @pytest.mark.asyncio
    async def test_menu_maps_dishes(self):
        record = {"id": 3, "name": "Bun cha", "price": 65000, "isAvailable": False, "category": "Noodles"}

        async with _client(lambda request: httpx.Response(200, json={"data": [record]})) as api:
            menu = await api.get_branch_menu("1")

        assert menu[0].dish_id == "3"
        assert menu[0].price == 65000
        assert not menu[0].available

    @pytest.mark.asyncio
    async def test_missing_order_time_is_a_malformed_record(self):
        broken = dict(ORDER_RECORD, orderTime=None)

        async with _client(lambda request: httpx.Response(200, json={"data": [broken]})) as api:
            with pytest.raises(ApiError, match="Malformed order"):
                await api.get_unresolved_orders("1")

    @pytest.mark.parametrize("record", [None, "42", {"id": 1, "status": "CONFIRMED", "totalPrice": 1, "orderTime": 5}])
    def test_non_record_payloads_are_malformed(self, record):
        with pytest.raises(ApiError):
            order_from_payload(record)

    @pytest.mark.asyncio
    async def test_get_order_reads_single_order(self):
        paths = []

        def handler(request):
            paths.append(request.url.path)
            return httpx.Response(200, json={"data": dict(ORDER_RECORD, status="PAID")})

        async with _client(handler) as api:
            order = await api.get_order("42")

        assert order.status == "PAID"
        assert paths == ["/api/eatnow/orders/42"]
