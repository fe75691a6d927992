"""
Shared fixtures and fakes for client tests.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from eatnow.cart import CartStore
from eatnow.errors import ApiError
from eatnow.models import Dish, OrderLine, PlacedOrder
from eatnow.persistence import ClientStorage

BASE_TIME = datetime(2026, 10, 18, 11, 0, tzinfo=timezone.utc)
_order_ids = itertools.count(100)


def make_dish(dish_id: str, price: int = 50000, name: str | None = None) -> Dish:
    return Dish(dish_id=dish_id, name=name or f"Dish {dish_id}", price=price)


def make_order(
    status: str = "CONFIRMED",
    dish_ids: tuple[str, ...] = ("d1",),
    minutes: int = 0,
    order_id: str | None = None,
) -> PlacedOrder:
    lines = tuple(OrderLine(dish_id=dish_id, quantity=1, unit_price=50000) for dish_id in dish_ids)
    return PlacedOrder(
        order_id=order_id or str(next(_order_ids)),
        branch_id="1",
        status=status,
        total=sum(line.subtotal for line in lines),
        created_at=BASE_TIME + timedelta(minutes=minutes),
        lines=lines,
        table_number=4,
    )


class FakeBackend:
    """In-memory stand-in for the API client used by the core."""

    def __init__(self) -> None:
        self.orders: list[PlacedOrder] = []
        self.dishes: dict[str, Dish] = {}
        self.feed_calls = 0
        self.dish_calls: list[str] = []
        self.status_calls: list[tuple[str, str]] = []
        self.created: list = []
        self.fail_feed = False
        self.fail_dishes: set[str] = set()
        self.fail_status = False
        self.fail_create = False
        self.fail_order = False
        self.order_calls = 0
        self.feed_gate: asyncio.Event | None = None
        self.status_override: str | None = None

    async def get_unresolved_orders(self, branch_id: str) -> list[PlacedOrder]:
        self.feed_calls += 1
        if self.feed_gate is not None:
            await self.feed_gate.wait()
        if self.fail_feed:
            raise ApiError("Service unavailable", status=503)
        return list(self.orders)

    async def get_branch_menu(self, branch_id: str) -> list[Dish]:
        return list(self.dishes.values())

    async def get_branch_dish(self, dish_id: str) -> Dish:
        self.dish_calls.append(dish_id)
        await asyncio.sleep(0)
        if dish_id in self.fail_dishes or dish_id not in self.dishes:
            raise ApiError(f"Dish {dish_id} not found", status=404)
        return self.dishes[dish_id]

    async def get_order(self, order_id: str) -> PlacedOrder:
        self.order_calls += 1
        if self.fail_order:
            raise ApiError("Service unavailable", status=503)
        for order in self.orders:
            if order.order_id == order_id:
                return order
        raise ApiError("Order not found", status=404)

    async def update_order_status(self, order_id: str, status: str) -> PlacedOrder:
        self.status_calls.append((order_id, status))
        if self.fail_status:
            raise ApiError("Network error. Please check your connection.")
        for idx, order in enumerate(self.orders):
            if order.order_id == order_id:
                new_status = self.status_override or status
                updated = PlacedOrder(
                    order_id=order.order_id,
                    branch_id=order.branch_id,
                    status=new_status,
                    total=order.total,
                    created_at=order.created_at,
                    lines=order.lines,
                    table_number=order.table_number,
                )
                self.orders[idx] = updated
                return updated
        raise ApiError("Order not found", status=404)

    async def create_order(self, request) -> str:
        if self.fail_create:
            raise ApiError("Branch is closed", status=400)
        self.created.append(request)
        return str(500 + len(self.created))


@pytest.fixture
def storage(tmp_path) -> ClientStorage:
    store = ClientStorage(tmp_path / "client.db")
    store.bootstrap_schema()
    return store


@pytest.fixture
def cart(storage) -> CartStore:
    store = CartStore(storage)
    store.load()
    return store


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
