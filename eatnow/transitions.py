"""Staff-initiated order status changes."""

from __future__ import annotations

import logging
from typing import Awaitable, Protocol

from eatnow.constant import NEXT_STATUS, STATUS_LABELS
from eatnow.errors import ApiError, InvalidTransitionError, TransitionError, TransitionInFlightError
from eatnow.models import PlacedOrder

logger = logging.getLogger(__name__)


class StatusUpdater(Protocol):
    async def update_order_status(self, order_id: str, status: str) -> PlacedOrder: ...


class Refreshable(Protocol):
    def refresh(self) -> Awaitable[None]: ...


def next_status(status: str) -> str | None:
    """Immediate successor of ``status``; None when terminal or unknown."""
    return NEXT_STATUS.get(status)


def check_transition(current: str, target: str) -> None:
    """Raise unless ``target`` is the immediate successor of ``current``."""
    expected = next_status(current)
    if expected is None:
        raise InvalidTransitionError(f"Order is already {STATUS_LABELS.get(current, current).lower()}.")
    if target != expected:
        raise InvalidTransitionError(
            f"Cannot move an order from {STATUS_LABELS.get(current, current)} to {STATUS_LABELS.get(target, target)}."
        )


class StatusTransitioner:
    """Advances orders one step, guarding each order against double submits."""

    def __init__(self, api: StatusUpdater, feed: Refreshable) -> None:
        self._api = api
        self._feed = feed
        self._in_flight: set[str] = set()

    def is_in_flight(self, order_id: str) -> bool:
        return order_id in self._in_flight

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    def can_advance(self, order: PlacedOrder) -> bool:
        return next_status(order.status) is not None and order.order_id not in self._in_flight

    async def advance(self, order: PlacedOrder, target: str | None = None) -> PlacedOrder:
        """Request the next status for ``order`` and refresh the feed.

        ``order`` is the projection last observed by this client. The server
        has the final word: whatever order it returns is what we report.
        """
        if target is None:
            target = next_status(order.status) or order.status
        check_transition(order.status, target)
        if order.order_id in self._in_flight:
            raise TransitionInFlightError(f"Order #{order.order_id} is already being updated.")

        self._in_flight.add(order.order_id)
        logger.info("transition_request order_id=%s from=%s to=%s", order.order_id, order.status, target)
        try:
            updated = await self._api.update_order_status(order.order_id, target)
        except ApiError as exc:
            logger.warning("transition_failed order_id=%s to=%s status=%s error=%s", order.order_id, target, exc.status, exc.message)
            raise TransitionError(exc.message or "Could not update the order status.") from exc
        finally:
            self._in_flight.discard(order.order_id)

        if updated.status != target:
            logger.info(
                "transition_server_disagrees order_id=%s requested=%s server=%s",
                order.order_id,
                target,
                updated.status,
            )
        await self._feed.refresh()
        return updated
