"""
Tests for the branch order feed poller.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
from conftest import BASE_TIME, make_dish, make_order

from eatnow.api import ApiClient
from eatnow.dish_cache import DishReferenceCache
from eatnow.feed import FeedState, OrderFeedPoller, partition_orders, sort_oldest_first


def _poller(backend, changes=None, errors=None, **kwargs):
    cache = DishReferenceCache(backend.get_branch_dish)
    return OrderFeedPoller(
        backend,
        "1",
        cache,
        on_change=(lambda poller: changes.append(list(poller.orders))) if changes is not None else None,
        on_error=errors.append if errors is not None else None,
        clock=lambda: BASE_TIME,
        **kwargs,
    )


class TestPartition:
    def test_oldest_first_within_each_bucket(self):
        late = make_order("CONFIRMED", minutes=9)
        early = make_order("CONFIRMED", minutes=1)
        cooking = make_order("PREPARING", minutes=5)
        done = make_order("READY", minutes=3)

        view = partition_orders(sort_oldest_first([late, cooking, done, early]))

        assert view.confirmed == [early, late]
        assert view.preparing == [cooking]
        assert view.ready == [done]
        assert view.counts() == {"CONFIRMED": 2, "PREPARING": 1, "READY": 1}

    def test_statuses_outside_board_are_ignored(self):
        view = partition_orders([make_order("COMPLETED"), make_order("PENDING")])

        assert view.counts() == {"CONFIRMED": 0, "PREPARING": 0, "READY": 0}


class TestOrderFeedPoller:
    @pytest.mark.asyncio
    async def test_each_fetch_replaces_the_list(self, backend):
        first, second = make_order(minutes=2), make_order(minutes=1)
        backend.orders = [first, second]
        poller = _poller(backend)

        await poller.refresh()
        assert poller.orders == [second, first]
        assert poller.state is FeedState.READY
        assert poller.last_synced_at == BASE_TIME

        backend.orders = [first]
        await poller.refresh()
        assert poller.orders == [first]
        assert poller.view.confirmed == [first]

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_list(self, backend):
        order = make_order()
        backend.orders = [order]
        errors = []
        poller = _poller(backend, errors=errors)
        await poller.refresh()

        backend.fail_feed = True
        backend.orders = []
        await poller.refresh()

        assert poller.orders == [order]
        assert poller.state is FeedState.READY
        assert errors == ["Could not refresh orders: Service unavailable"]

    @pytest.mark.asyncio
    async def test_missing_dishes_resolved_after_fetch(self, backend):
        backend.dishes = {"d1": make_dish("d1", name="Com tam")}
        backend.orders = [make_order(dish_ids=("d1",))]
        changes = []
        poller = _poller(backend, changes=changes)

        await poller.refresh()

        assert poller.dish_cache.get("d1").name == "Com tam"
        assert len(changes) == 2

        await poller.refresh()
        assert backend.dish_calls == ["d1"]

    @pytest.mark.asyncio
    async def test_triggers_during_fetch_collapse_into_one_follow_up(self, backend):
        gate = asyncio.Event()
        backend.feed_gate = gate
        poller = _poller(backend)

        first = poller.refresh()
        await asyncio.sleep(0)
        poller.refresh()
        poller.refresh()
        assert backend.feed_calls == 1
        assert poller.state is FeedState.FETCHING

        gate.set()
        await first

        assert backend.feed_calls == 2

    @pytest.mark.asyncio
    async def test_results_arriving_after_stop_are_discarded(self, backend):
        gate = asyncio.Event()
        backend.feed_gate = gate
        backend.orders = [make_order()]
        changes = []
        poller = _poller(backend, changes=changes)

        pending = poller.refresh()
        await asyncio.sleep(0)
        poller.stop()
        gate.set()
        await pending

        assert poller.orders == []
        assert changes == []
        assert poller.last_synced_at is None

    @pytest.mark.asyncio
    async def test_failure_after_stop_is_not_reported(self, backend):
        gate = asyncio.Event()
        backend.feed_gate = gate
        backend.fail_feed = True
        errors = []
        poller = _poller(backend, errors=errors)

        pending = poller.refresh()
        await asyncio.sleep(0)
        poller.stop()
        gate.set()
        await pending

        assert errors == []

    @pytest.mark.asyncio
    async def test_start_fetches_and_stop_cancels(self, backend):
        poller = _poller(backend, interval=60)

        handle = poller.start()
        for _ in range(5):
            await asyncio.sleep(0)

        assert backend.feed_calls == 1
        assert handle.active
        assert poller.running
        assert poller.start() is handle

        poller.stop()
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert not handle.active
        assert not poller.running
        with pytest.raises(RuntimeError):
            poller.start()

    @pytest.mark.asyncio
    async def test_refresh_after_stop_is_a_no_op(self, backend):
        poller = _poller(backend)
        poller.stop()

        await poller.refresh()

        assert backend.feed_calls == 0


class TestPollingInterval:
    @pytest.mark.asyncio
    async def test_fetches_again_on_every_tick(self, backend):
        poller = _poller(backend, interval=0.01)

        handle = poller.start()
        await asyncio.sleep(0.1)
        poller.stop()

        assert backend.feed_calls >= 3
        await asyncio.sleep(0)
        assert not handle.active

    @pytest.mark.asyncio
    async def test_manual_refresh_does_not_wait_for_tick(self, backend):
        poller = _poller(backend, interval=60)
        poller.start()
        for _ in range(5):
            await asyncio.sleep(0)
        backend.orders = [make_order()]

        await poller.refresh()

        assert backend.feed_calls == 2
        assert len(poller.orders) == 1
        poller.stop()

    @pytest.mark.asyncio
    async def test_failed_fetches_keep_the_loop_alive(self, backend):
        backend.fail_feed = True
        errors = []
        poller = _poller(backend, errors=errors, interval=0.01)

        handle = poller.start()
        await asyncio.sleep(0.1)

        assert backend.feed_calls >= 3
        assert handle.active
        assert poller.state is FeedState.READY
        assert len(errors) == backend.feed_calls
        poller.stop()

    @pytest.mark.asyncio
    async def test_malformed_order_record_does_not_stop_polling(self):
        calls = []
        record = {"id": 1, "status": "CONFIRMED", "totalPrice": 50000, "orderTime": None}

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(200, json={"data": [record]})

        api = ApiClient("http://backend.test/api", transport=httpx.MockTransport(handler))
        errors = []
        poller = OrderFeedPoller(api, "1", DishReferenceCache(api.get_branch_dish), interval=0.01, on_error=errors.append)

        handle = poller.start()
        await asyncio.sleep(0.2)

        assert len(calls) >= 3
        assert handle.active
        assert poller.state is FeedState.READY
        assert errors and errors[0].startswith("Could not refresh orders: Malformed order record")
        poller.stop()
        await api.aclose()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported_and_polling_continues(self, backend):
        backend.get_unresolved_orders = AsyncMock(side_effect=RuntimeError("decoder bug"))
        errors = []
        poller = _poller(backend, errors=errors, interval=0.01)

        handle = poller.start()
        await asyncio.sleep(0.1)

        assert backend.get_unresolved_orders.await_count >= 3
        assert handle.active
        assert poller.state is FeedState.READY
        assert errors[0] == "Could not refresh orders."
        poller.stop()
