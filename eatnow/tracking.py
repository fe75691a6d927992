"""Customer-side status tracking for one placed order."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from eatnow.config import ORDER_TRACK_INTERVAL_SECONDS
from eatnow.constant import TRACKING_FINAL_STATUSES
from eatnow.errors import ApiError
from eatnow.feed import PollHandle
from eatnow.models import PlacedOrder

logger = logging.getLogger(__name__)


class OrderSource(Protocol):
    async def get_order(self, order_id: str) -> PlacedOrder: ...


class OrderStatusTracker:
    """Polls one order until it is ready or paid, or until :meth:`stop`.

    A failed poll keeps the last known order and is retried on the next tick.
    """

    def __init__(
        self,
        source: OrderSource,
        order_id: str,
        *,
        interval: float = ORDER_TRACK_INTERVAL_SECONDS,
        on_change: Callable[[PlacedOrder], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._source = source
        self.order_id = order_id
        self.interval = interval
        self._on_change = on_change
        self._on_error = on_error
        self.order: PlacedOrder | None = None
        self._handle: PollHandle | None = None
        self._stopped = False

    @property
    def finished(self) -> bool:
        return self.order is not None and self.order.status in TRACKING_FINAL_STATUSES

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> PollHandle:
        if self._stopped:
            raise RuntimeError("tracker was stopped; create a new one")
        if self._handle is None:
            self._handle = PollHandle(asyncio.ensure_future(self._run()))
        return self._handle

    def stop(self) -> None:
        self._stopped = True
        if self._handle is not None:
            self._handle.cancel()

    async def poll_once(self) -> PlacedOrder | None:
        """Fetch the order once; returns the latest known order."""
        try:
            order = await self._source.get_order(self.order_id)
        except ApiError as exc:
            logger.warning("order_track_failed order_id=%s status=%s error=%s", self.order_id, exc.status, exc.message)
            if not self._stopped and self._on_error is not None:
                self._on_error(f"Could not check order status: {exc.message}")
            return self.order

        if self._stopped:
            return self.order
        changed = self.order is None or self.order.status != order.status
        self.order = order
        if changed:
            logger.info("order_track_status order_id=%s status=%s", self.order_id, order.status)
            if self._on_change is not None:
                self._on_change(order)
        return order

    async def _run(self) -> None:
        while not self._stopped:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("order_track_crashed order_id=%s", self.order_id)
            if self.finished:
                logger.debug("order_track_done order_id=%s status=%s", self.order_id, self.order.status)
                return
            await asyncio.sleep(self.interval)
