"""HTTP client for the EatNow backend.

Every backend response is wrapped in ``{"data": ..., "message": ..., "success": ...}``.
The client unwraps ``data`` and maps records onto the domain dataclasses, so callers
never see raw payloads. Transport failures, non-2xx responses and malformed
records all surface as :class:`~eatnow.errors.ApiError`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from eatnow.config import API_BASE_URL, REQUEST_TIMEOUT_SECONDS
from eatnow.errors import ApiError
from eatnow.models import Dish, OrderLine, OrderRequest, PlacedOrder

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection."


def _as_money(value: Any) -> int:
    return int(round(float(value)))


def _parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"expected an ISO timestamp, got {value!r}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def dish_from_payload(raw: dict[str, Any]) -> Dish:
    """Map a branch dish record onto :class:`Dish`."""
    try:
        return Dish(
            dish_id=str(raw["id"]),
            name=str(raw["name"]),
            price=_as_money(raw.get("price", 0)),
            description=raw.get("description") or "",
            image_url=raw.get("imageUrl") or "",
            category=raw.get("category") or "",
            available=bool(raw.get("isAvailable", True)),
            best_seller=bool(raw.get("isBestSeller", False)),
            is_new=bool(raw.get("isNew", False)),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ApiError(f"Malformed dish record: {exc}") from exc


def order_from_payload(raw: dict[str, Any]) -> PlacedOrder:
    """Map an order record onto :class:`PlacedOrder`."""
    try:
        lines = tuple(
            OrderLine(
                dish_id=str(item["branchDishId"]),
                quantity=int(item["quantity"]),
                unit_price=_as_money(item["unitPrice"]),
            )
            for item in raw.get("orderItemInfos") or []
        )
        table_number = raw.get("tableNumber")
        return PlacedOrder(
            order_id=str(raw["id"]),
            branch_id=str(raw.get("branchId", "")),
            status=str(raw["status"]).upper(),
            total=_as_money(raw["totalPrice"]),
            created_at=_parse_timestamp(raw["orderTime"]),
            lines=lines,
            table_number=int(table_number) if table_number is not None else None,
            notes=raw.get("notes") or "",
            payment_method=raw.get("paymentMethod"),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ApiError(f"Malformed order record: {exc}") from exc


def order_request_to_payload(request: OrderRequest) -> dict[str, Any]:
    return {
        "branchId": request.branch_id,
        "tableNumber": request.table_number,
        "paymentMethod": request.payment_method,
        "notes": request.notes,
        "items": [
            {"branchDishId": line.dish_id, "quantity": line.quantity, "unitPrice": line.unit_price}
            for line in request.lines
        ],
        "totalPrice": request.total_price,
    }


class ApiClient:
    """Async client for the order, dish and menu endpoints."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: str | None = None,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    def set_token(self, token: str | None) -> None:
        self._token = token

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        try:
            response = await self._client.request(method, endpoint, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.debug("request_failed method=%s endpoint=%s error=%r", method, endpoint, exc)
            raise ApiError(NETWORK_ERROR_MESSAGE) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_error:
            raise ApiError(
                body.get("message") or "An error occurred",
                status=response.status_code,
                errors=body.get("errors"),
            )
        return body.get("data")

    async def get_branch_menu(self, branch_id: str) -> list[Dish]:
        data = await self._request("GET", f"/eatnow/branches/{branch_id}/dishes")
        return [dish_from_payload(item) for item in data or []]

    async def get_branch_dish(self, dish_id: str) -> Dish:
        data = await self._request("GET", f"/eatnow/branch-dishes/{dish_id}")
        if not isinstance(data, dict):
            raise ApiError(f"Dish {dish_id} not found", status=404)
        return dish_from_payload(data)

    async def get_unresolved_orders(self, branch_id: str) -> list[PlacedOrder]:
        data = await self._request("GET", f"/eatnow/orders/branch/{branch_id}/unresolved")
        return [order_from_payload(item) for item in data or []]

    async def get_order(self, order_id: str) -> PlacedOrder:
        data = await self._request("GET", f"/eatnow/orders/{order_id}")
        if not isinstance(data, dict):
            raise ApiError(f"Order {order_id} not found", status=404)
        return order_from_payload(data)

    async def update_order_status(self, order_id: str, status: str) -> PlacedOrder:
        data = await self._request("PUT", f"/eatnow/orders/{order_id}/status", json={"status": status})
        if not isinstance(data, dict):
            raise ApiError("Malformed status update response")
        return order_from_payload(data)

    async def create_order(self, request: OrderRequest) -> str:
        """Submit an order and return the server-allocated order id."""
        data = await self._request("POST", "/eatnow/orders", json=order_request_to_payload(request))
        if isinstance(data, dict) and data.get("id") is not None:
            return str(data["id"])
        if isinstance(data, (str, int)):
            return str(data)
        raise ApiError("Order created but no order id was returned")
