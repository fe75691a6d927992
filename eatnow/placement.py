"""Turn a cart snapshot into a submitted order."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Protocol

from eatnow.cart import CartStore
from eatnow.constant import PAYMENT_METHODS
from eatnow.errors import ApiError, PlacementError, ValidationError
from eatnow.models import CartEntry, OrderLine, OrderRequest
from eatnow.persistence import ClientStorage

logger = logging.getLogger(__name__)


class OrderCreator(Protocol):
    async def create_order(self, request: OrderRequest) -> str: ...


@dataclass(frozen=True)
class PlacementResult:
    """What the confirmation view needs after a successful submit."""

    order_id: str
    total: int
    item_count: int


def build_order_request(
    entries: list[CartEntry],
    branch_id: str | None,
    payment_method: str,
    notes: str = "",
    table_number: int | None = None,
) -> OrderRequest:
    """Validate checkout input and build the creation payload."""
    if not entries:
        raise ValidationError("Your cart is empty.")
    if not branch_id:
        raise ValidationError("Please choose a branch.")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Unsupported payment method: {payment_method}")
    if table_number is not None and table_number <= 0:
        raise ValidationError("Table number must be a positive number.")

    lines = tuple(
        OrderLine(dish_id=entry.dish_id, quantity=entry.quantity, unit_price=entry.price) for entry in entries
    )
    return OrderRequest(
        branch_id=str(branch_id),
        payment_method=payment_method,
        lines=lines,
        total_price=sum(line.subtotal for line in lines),
        notes=notes.strip(),
        table_number=table_number,
    )


async def place_order(
    cart: CartStore,
    api: OrderCreator,
    branch_id: str | None,
    payment_method: str,
    notes: str = "",
    table_number: int | None = None,
    receipts: ClientStorage | None = None,
) -> PlacementResult:
    """Submit the current cart.

    Only after the server has accepted the order are the submitted quantities
    taken out of the cart; dishes added while the request was in flight stay.
    On any failure the cart is left exactly as it was, so the customer can retry.
    """
    snapshot = cart.snapshot()
    request = build_order_request(snapshot, branch_id, payment_method, notes, table_number)
    item_count = sum(line.quantity for line in request.lines)

    logger.info(
        "placement_submit branch=%s lines=%d total=%d payment=%s",
        request.branch_id,
        len(request.lines),
        request.total_price,
        request.payment_method,
    )
    try:
        order_id = await api.create_order(request)
    except ApiError as exc:
        logger.warning("placement_failed branch=%s status=%s error=%s", request.branch_id, exc.status, exc.message)
        raise PlacementError(exc.message or "Could not place the order.") from exc

    cart.discard_ordered(snapshot)
    logger.info("placement_ok order_id=%s kept_items=%d", order_id, cart.item_count)

    if receipts is not None:
        try:
            receipts.save_order_receipt(order_id, request.branch_id, request.total_price, item_count)
        except (sqlite3.Error, OSError) as exc:
            logger.warning("receipt_save_failed order_id=%s error=%r", order_id, exc)

    return PlacementResult(order_id=order_id, total=request.total_price, item_count=item_count)
