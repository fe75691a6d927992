"""Interval-polled feed of a branch's open orders."""

from __future__ import annotations

import asyncio
import enum
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Protocol

from eatnow.config import POLL_INTERVAL_SECONDS
from eatnow.constant import BOARD_STATUSES
from eatnow.dish_cache import DishReferenceCache, plan_dish_resolution
from eatnow.errors import ApiError
from eatnow.models import PlacedOrder, StaffOrderView

logger = logging.getLogger(__name__)


class FeedSource(Protocol):
    async def get_unresolved_orders(self, branch_id: str) -> list[PlacedOrder]: ...


class FeedState(enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    READY = "ready"


def sort_oldest_first(orders: Iterable[PlacedOrder]) -> list[PlacedOrder]:
    return sorted(orders, key=lambda order: order.created_at)


def partition_orders(orders: Iterable[PlacedOrder]) -> StaffOrderView:
    """Split orders into the board buckets, keeping their relative order."""
    view = StaffOrderView()
    for order in orders:
        if order.status in BOARD_STATUSES:
            view.bucket(order.status).append(order)
    return view


class PollHandle:
    """Owns the interval task; stopping it is final and idempotent."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()


class OrderFeedPoller:
    """Keeps the latest open-order list for one branch.

    Every fetch fully replaces the list; the server is the only source of
    truth for which orders are still open. At most one fetch runs at a time,
    and triggers arriving mid-fetch collapse into one follow-up fetch.
    """

    def __init__(
        self,
        source: FeedSource,
        branch_id: str,
        dish_cache: DishReferenceCache,
        *,
        interval: float = POLL_INTERVAL_SECONDS,
        on_change: Callable[[OrderFeedPoller], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._source = source
        self.branch_id = branch_id
        self.dish_cache = dish_cache
        self.interval = interval
        self._on_change = on_change
        self._on_error = on_error
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.state = FeedState.IDLE
        self.orders: list[PlacedOrder] = []
        self.view = StaffOrderView()
        self.last_synced_at: datetime | None = None

        self._handle: PollHandle | None = None
        self._cycle: asyncio.Task[None] | None = None
        self._refetch_requested = False
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.active

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> PollHandle:
        """Fetch now and then on every interval tick until :meth:`stop`."""
        if self._stopped:
            raise RuntimeError("poller was stopped; create a new one")
        if self._handle is None:
            self._handle = PollHandle(asyncio.ensure_future(self._run_interval()))
        return self._handle

    def stop(self) -> None:
        """Cancel the interval. Results of fetches still in flight are discarded."""
        self._stopped = True
        if self._handle is not None:
            self._handle.cancel()
        logger.debug("feed_stopped branch=%s", self.branch_id)

    def refresh(self) -> Awaitable[None]:
        """Fetch immediately instead of waiting for the next tick."""
        if self._stopped:
            done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            done.set_result(None)
            return done
        if self._cycle is not None and not self._cycle.done():
            self._refetch_requested = True
            return asyncio.shield(self._cycle)
        self._cycle = asyncio.ensure_future(self._fetch_cycle())
        return asyncio.shield(self._cycle)

    async def _run_interval(self) -> None:
        while not self._stopped:
            try:
                await self.refresh()
            except Exception:
                logger.exception("feed_cycle_crashed branch=%s", self.branch_id)
                self.state = FeedState.READY
                if not self._stopped:
                    self._report_error("Could not refresh orders.")
            await asyncio.sleep(self.interval)

    async def _fetch_cycle(self) -> None:
        while True:
            self._refetch_requested = False
            await self._fetch_once()
            if self._stopped or not self._refetch_requested:
                return

    async def _fetch_once(self) -> None:
        self.state = FeedState.FETCHING
        try:
            fetched = await self._source.get_unresolved_orders(self.branch_id)
        except ApiError as exc:
            if self._stopped:
                return
            self.state = FeedState.READY
            logger.warning("feed_fetch_failed branch=%s status=%s error=%s", self.branch_id, exc.status, exc.message)
            self._report_error(f"Could not refresh orders: {exc.message}")
            return
        except Exception:
            if self._stopped:
                return
            self.state = FeedState.READY
            logger.exception("feed_fetch_crashed branch=%s", self.branch_id)
            self._report_error("Could not refresh orders.")
            return

        if self._stopped:
            logger.debug("feed_result_discarded branch=%s orders=%d", self.branch_id, len(fetched))
            return

        self.orders = sort_oldest_first(fetched)
        self.view = partition_orders(self.orders)
        self.last_synced_at = self._clock()
        self.state = FeedState.READY
        logger.debug("feed_fetched branch=%s orders=%d counts=%s", self.branch_id, len(self.orders), self.view.counts())
        self._notify()

        missing = plan_dish_resolution(self.dish_cache.entries, self.orders)
        if not missing:
            return
        await self.dish_cache.resolve_many(missing)
        if not self._stopped:
            self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)

    def _report_error(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)
