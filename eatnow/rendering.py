"""Rendering helpers for prices, status badges, cart rows and order cards."""

from __future__ import annotations

from datetime import datetime, timezone

from rich.text import Text

from eatnow.constant import STATUS_CONFIRMED, STATUS_LABELS, STATUS_PAID, STATUS_PREPARING, STATUS_READY
from eatnow.dish_cache import DishReferenceCache
from eatnow.models import CartEntry, Dish, PlacedOrder


def format_price(amount: int) -> str:
    """Format a VND amount as ``75.000 ₫``."""
    return f"{amount:,}".replace(",", ".") + " ₫"


def badge_style(status: str) -> str:
    """Return a consistent badge style for order statuses."""
    if status == STATUS_CONFIRMED:
        return "bold #3b2a00 on #f2c94c"
    if status == STATUS_PREPARING:
        return "bold #ffffff on #2f6db5"
    if status == STATUS_READY:
        return "bold #0b1f0f on #5fbf72"
    if status == STATUS_PAID:
        return "bold #ffffff on #7a4fb5"
    return "bold #ffffff on #6b6b6b"


def status_badge(status: str) -> Text:
    return Text(f" {STATUS_LABELS.get(status, status.title())} ", style=badge_style(status))


def time_since(created_at: datetime, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    minutes = int((now - created_at).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes} min ago"
    return f"{minutes // 60} h ago"


def dish_label(dish_id: str, cache: DishReferenceCache) -> str:
    """Cached dish name, or a placeholder until the cache resolves it."""
    dish = cache.get(dish_id)
    if dish is None:
        return f"Dish #{dish_id}"
    return dish.name


def format_menu_row(dish: Dish, in_cart: int = 0) -> Text:
    text = Text()
    text.append(dish.name, style="bold" if dish.best_seller else "")
    text.append(f"  {format_price(dish.price)}", style="dim")
    if not dish.available:
        text.append("  sold out", style="italic #b23a48")
    if in_cart:
        text.append(f"  x{in_cart}", style="bold #5fbf72")
    return text


def format_cart_line(entry: CartEntry) -> Text:
    text = Text()
    text.append(f"{entry.quantity}x ", style="bold")
    text.append(entry.name)
    text.append(f"  {format_price(entry.subtotal)}", style="dim")
    return text


def format_order_card(
    order: PlacedOrder,
    cache: DishReferenceCache,
    *,
    busy: bool = False,
    now: datetime | None = None,
) -> Text:
    """Render one order as a compact card for the staff board."""
    text = Text()
    text.append(f"#{order.order_id}", style="bold")
    if order.table_number is not None:
        text.append(f"  Table {order.table_number}")
    text.append("  ")
    text.append_text(status_badge(order.status))
    if busy:
        text.append("  updating…", style="italic dim")

    for line in order.lines:
        text.append("\n    ")
        text.append(f"{line.quantity}x {dish_label(line.dish_id, cache)}")
        text.append(f"  {format_price(line.subtotal)}", style="dim")

    if order.notes:
        text.append(f"\n    note: {order.notes}", style="italic")

    text.append("\n    ")
    text.append(time_since(order.created_at, now), style="dim")
    text.append(f"  {format_price(order.total)}", style="bold")
    return text
