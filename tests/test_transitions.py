"""
Tests for staff status transitions.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from conftest import FakeBackend, make_order

from eatnow.dish_cache import DishReferenceCache
from eatnow.errors import InvalidTransitionError, TransitionError, TransitionInFlightError
from eatnow.feed import OrderFeedPoller
from eatnow.transitions import StatusTransitioner, check_transition, next_status


class GatedBackend(FakeBackend):
    """Holds status updates until the gate opens."""

    def __init__(self) -> None:
        super().__init__()
        self.status_gate = asyncio.Event()

    async def update_order_status(self, order_id, status):
        await self.status_gate.wait()
        return await super().update_order_status(order_id, status)


async def _board(backend):
    poller = OrderFeedPoller(backend, "1", DishReferenceCache(backend.get_branch_dish))
    await poller.refresh()
    return poller, StatusTransitioner(backend, poller)


class TestTransitionRules:
    def test_next_status(self):
        assert next_status("CONFIRMED") == "PREPARING"
        assert next_status("PREPARING") == "READY"
        assert next_status("READY") is None

    @pytest.mark.parametrize(
        "current, target",
        [("CONFIRMED", "READY"), ("PREPARING", "CONFIRMED"), ("READY", "PREPARING"), ("CONFIRMED", "CONFIRMED")],
    )
    def test_only_single_forward_steps(self, current, target):
        with pytest.raises(InvalidTransitionError):
            check_transition(current, target)


class TestStatusTransitioner:
    @pytest.mark.asyncio
    async def test_skipping_a_step_makes_no_request(self, backend):
        order = make_order("CONFIRMED")
        backend.orders = [order]
        _, transitioner = await _board(backend)

        with pytest.raises(InvalidTransitionError):
            await transitioner.advance(order, "READY")

        assert backend.status_calls == []

    @pytest.mark.asyncio
    async def test_ready_orders_cannot_advance(self, backend):
        order = make_order("READY")
        backend.orders = [order]
        _, transitioner = await _board(backend)

        assert not transitioner.can_advance(order)
        with pytest.raises(InvalidTransitionError, match="already ready"):
            await transitioner.advance(order)

    @pytest.mark.asyncio
    async def test_success_moves_order_to_next_bucket(self, backend):
        order = make_order("CONFIRMED")
        backend.orders = [order]
        poller, transitioner = await _board(backend)

        updated = await transitioner.advance(order)

        assert updated.status == "PREPARING"
        assert backend.status_calls == [(order.order_id, "PREPARING")]
        assert poller.view.confirmed == []
        assert [o.order_id for o in poller.view.preparing] == [order.order_id]
        assert backend.feed_calls == 2

    @pytest.mark.asyncio
    async def test_failure_clears_marker_and_allows_retry(self, backend):
        order = make_order("PREPARING")
        backend.orders = [order]
        poller, transitioner = await _board(backend)
        backend.fail_status = True

        with pytest.raises(TransitionError, match="Network error"):
            await transitioner.advance(order)

        assert not transitioner.is_in_flight(order.order_id)
        assert poller.view.preparing == [order]

        backend.fail_status = False
        updated = await transitioner.advance(order)

        assert updated.status == "READY"
        assert [o.order_id for o in poller.view.ready] == [order.order_id]

    @pytest.mark.asyncio
    async def test_second_request_while_in_flight_is_rejected(self):
        backend = GatedBackend()
        order = make_order("CONFIRMED")
        backend.orders = [order]
        _, transitioner = await _board(backend)

        first = asyncio.ensure_future(transitioner.advance(order))
        await asyncio.sleep(0)
        assert transitioner.is_in_flight(order.order_id)
        assert not transitioner.can_advance(order)

        with pytest.raises(TransitionInFlightError):
            await transitioner.advance(order)

        backend.status_gate.set()
        await first

        assert backend.status_calls == [(order.order_id, "PREPARING")]
        assert transitioner.in_flight == frozenset()

    @pytest.mark.asyncio
    async def test_other_orders_are_not_blocked(self):
        backend = GatedBackend()
        first_order, second_order = make_order("CONFIRMED"), make_order("PREPARING", minutes=1)
        backend.orders = [first_order, second_order]
        _, transitioner = await _board(backend)

        tasks = [
            asyncio.ensure_future(transitioner.advance(first_order)),
            asyncio.ensure_future(transitioner.advance(second_order)),
        ]
        await asyncio.sleep(0)
        assert transitioner.in_flight == {first_order.order_id, second_order.order_id}

        backend.status_gate.set()
        await asyncio.gather(*tasks)

        assert transitioner.in_flight == frozenset()

    @pytest.mark.asyncio
    async def test_server_status_wins_when_it_disagrees(self, backend):
        order = make_order("CONFIRMED")
        backend.orders = [order]
        backend.status_override = "READY"
        poller, transitioner = await _board(backend)

        updated = await transitioner.advance(order)

        assert updated.status == "READY"
        assert [o.order_id for o in poller.view.ready] == [order.order_id]

    @pytest.mark.asyncio
    async def test_feed_refresh_awaited_after_success(self):
        api = AsyncMock()
        api.update_order_status.return_value = make_order("PREPARING", order_id="9")
        feed = AsyncMock()
        transitioner = StatusTransitioner(api, feed)

        await transitioner.advance(make_order("CONFIRMED", order_id="9"))

        api.update_order_status.assert_awaited_once_with("9", "PREPARING")
        feed.refresh.assert_awaited_once()
