"""Customer screen: browse a branch menu, build the cart and check out."""

from __future__ import annotations

import logging
import sqlite3

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.screen import Screen
from textual.widgets import Footer, Header, Static

from eatnow.api import ApiClient
from eatnow.cart import CartStore
from eatnow.checkout_modal import CheckoutChoice, CheckoutModal
from eatnow.confirmation_modal import ConfirmationModal
from eatnow.errors import ApiError, PlacementError, ValidationError
from eatnow.models import CartEntry, Dish
from eatnow.order_history_modal import OrderHistoryModal
from eatnow.persistence import ClientStorage
from eatnow.placement import place_order
from eatnow.rendering import format_cart_line, format_menu_row, format_price

logger = logging.getLogger(__name__)


def scroll_window(count: int, height: int, cursor: int | None) -> range:
    """Indexes of the rows to draw so that ``cursor`` sits mid-list when it can."""
    height = max(1, height)
    if cursor is None or count <= height:
        return range(min(count, height))
    first = min(max(cursor - height // 2, 0), count - height)
    return range(first, first + height)


def _rows_available(widget: Static, fallback: int = 8) -> int:
    return widget.size.height or fallback


class MenuScreen(Screen):
    """Menu on the left, cart on the right."""

    CSS = """
    #main-layout {
        height: 1fr;
    }

    #menu-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #cart-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 3;
    }

    #menu-list, #cart-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #cart-total {
        margin-top: 1;
        text-style: bold;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    BINDINGS = [
        ("tab", "switch_pane", "Menu/Cart"),
        ("j", "move(1)", "Down"),
        ("k", "move(-1)", "Up"),
        ("down", "move(1)", "Down"),
        ("up", "move(-1)", "Up"),
        ("enter", "add_selected", "Add"),
        ("plus", "change_quantity(1)", "+1"),
        ("minus", "change_quantity(-1)", "-1"),
        ("d", "remove_selected", "Remove"),
        ("slash", "start_search", "Search"),
        ("escape", "cancel_search", "Exit search"),
        ("r", "reload_menu", "Reload"),
        ("o", "show_orders", "My orders"),
        Binding("ctrl+s", "checkout", "Checkout", priority=True),
    ]

    input_state = reactive("normal")
    search_query = reactive("")
    pane = reactive("menu")
    menu_index = reactive(0)
    cart_index = reactive(None)

    def __init__(
        self,
        api: ApiClient,
        cart: CartStore,
        branch_id: str,
        receipts: ClientStorage | None = None,
        table_number: int | None = None,
    ) -> None:
        super().__init__()
        self.api = api
        self.cart = cart
        self.branch_id = branch_id
        self.receipts = receipts
        self.table_number = table_number
        self.menu: list[Dish] = []
        self.submitting = False
        self.status_line = "Loading menu…"

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="menu-pane"):
                yield Static(id="search-bar")
                yield Static(id="menu-list")
            with Vertical(id="cart-pane"):
                yield Static("Your Cart", classes="pane-title")
                yield Static("(cart is empty)", id="cart-list")
                yield Static(id="cart-total")
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = f"Branch {self.branch_id}"
        self._refresh_all()
        self.run_worker(self._load_menu(), exclusive=True, group="menu")

    async def _load_menu(self) -> None:
        try:
            menu = await self.api.get_branch_menu(self.branch_id)
        except ApiError as exc:
            logger.warning("menu_load_failed branch=%s error=%s", self.branch_id, exc.message)
            self.status_line = "Menu unavailable"
            self.notify(f"Could not load the menu: {exc.message}", severity="error")
            self._refresh_all()
            return
        self.menu = menu
        self.menu_index = 0
        self.status_line = f"{len(menu)} dishes"
        self._refresh_all()

    def on_key(self, event: Key) -> None:
        if self.input_state != "active":
            return
        if event.key == "backspace":
            self.search_query = self.search_query[:-1]
        elif event.is_printable and event.character:
            self.search_query += event.character
        else:
            return
        self.menu_index = 0
        self._refresh_menu()
        event.stop()

    def action_start_search(self) -> None:
        self.input_state = "active"
        self.pane = "menu"
        self.search_query = ""
        self._refresh_menu()

    def action_cancel_search(self) -> None:
        if self.input_state == "normal":
            return
        self.input_state = "normal"
        self.search_query = ""
        self.menu_index = 0
        self._refresh_menu()

    def action_switch_pane(self) -> None:
        self.pane = "cart" if self.pane == "menu" else "menu"
        if self.pane == "cart" and self.cart_index is None and not self.cart.is_empty():
            self.cart_index = 0
        self._refresh_all()

    def action_move(self, delta: int) -> None:
        if self.pane == "menu":
            results = self._filtered_menu()
            if results:
                self.menu_index = (self.menu_index + delta) % len(results)
            self._refresh_menu()
            return

        entries = self.cart.entries
        if not entries:
            return
        if self.cart_index is None:
            self.cart_index = 0 if delta > 0 else len(entries) - 1
        else:
            self.cart_index = (self.cart_index + delta) % len(entries)
        self._refresh_cart()

    def action_add_selected(self) -> None:
        if self.submitting or self.pane != "menu":
            return
        results = self._filtered_menu()
        if not results:
            return
        dish = results[self.menu_index]
        if not dish.available:
            self.notify(f"{dish.name} is sold out.", severity="warning")
            return
        self.cart.add_item(dish)
        self._refresh_all()

    def action_change_quantity(self, delta: int) -> None:
        if self.submitting:
            return
        entry = self._selected_cart_entry()
        if entry is None:
            return
        self.cart.update_quantity(entry.dish_id, entry.quantity + delta)
        self._refresh_all()

    def action_remove_selected(self) -> None:
        if self.submitting:
            return
        entry = self._selected_cart_entry()
        if entry is None:
            return
        self.cart.remove_item(entry.dish_id)
        self._refresh_all()

    def action_reload_menu(self) -> None:
        if self.input_state == "active":
            return
        self.run_worker(self._load_menu(), exclusive=True, group="menu")

    def action_show_orders(self) -> None:
        if self.input_state == "active":
            return
        try:
            receipts = self.receipts.list_order_receipts() if self.receipts is not None else []
        except (sqlite3.Error, OSError) as exc:
            logger.warning("receipts_load_failed error=%r", exc)
            receipts = []
        self.app.push_screen(OrderHistoryModal(receipts, self.api))

    def action_checkout(self) -> None:
        if self.submitting:
            return
        if self.cart.is_empty():
            self.notify("Your cart is empty.", severity="warning")
            return
        self.app.push_screen(
            CheckoutModal(self.cart.total, self.cart.item_count, self.table_number),
            callback=self._on_checkout_choice,
        )

    def _on_checkout_choice(self, choice: CheckoutChoice | None) -> None:
        if choice is None:
            return
        self.table_number = choice.table_number
        self.submitting = True
        self.run_worker(self._submit(choice), group="checkout")

    async def _submit(self, choice: CheckoutChoice) -> None:
        self.status_line = "Placing order…"
        self._refresh_search_bar()
        try:
            result = await place_order(
                self.cart,
                self.api,
                self.branch_id,
                choice.payment_method,
                notes=choice.notes,
                table_number=choice.table_number,
                receipts=self.receipts,
            )
        except ValidationError as exc:
            self.notify(exc.message, severity="warning")
            return
        except PlacementError as exc:
            self.notify(f"Order failed: {exc.message}", severity="error")
            return
        finally:
            self.submitting = False
            self.status_line = f"{len(self.menu)} dishes"
            self._refresh_all()

        self.cart_index = None
        self._refresh_all()
        self.app.push_screen(ConfirmationModal(result, self.api))

    def _filtered_menu(self) -> list[Dish]:
        if not self.search_query:
            return self.menu
        q = self.search_query.lower()
        return [dish for dish in self.menu if q in dish.name.lower() or q in dish.category.lower()]

    def _selected_cart_entry(self) -> CartEntry | None:
        if self.pane != "cart" or self.cart_index is None:
            return None
        entries = self.cart.entries
        if not (0 <= self.cart_index < len(entries)):
            return None
        return entries[self.cart_index]

    def _refresh_all(self) -> None:
        self._refresh_search_bar()
        self._refresh_menu()
        self._refresh_cart()

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            bar.update(f"/ search. Tab switch pane. Ctrl+S checkout.\n{self.status_line}")
            return
        bar.update(Text(f"Search: {self.search_query}|", style="bold"))

    def _refresh_menu(self) -> None:
        try:
            menu_widget = self.query_one("#menu-list", Static)
        except NoMatches:
            return
        results = self._filtered_menu()
        if not results:
            menu_widget.update("No results" if self.menu else "(menu not loaded)")
            return
        if self.menu_index >= len(results):
            self.menu_index = 0

        rows = scroll_window(len(results), _rows_available(menu_widget), self.menu_index)
        lines = Text()
        if rows.start > 0:
            lines.append("⋮\n", style="dim")
        for idx in rows:
            dish = results[idx]
            pointer = "➤ " if idx == self.menu_index and self.pane == "menu" else "  "
            lines.append(("\n" if idx > rows.start else "") + pointer)
            lines.append_text(format_menu_row(dish, self.cart.get_item_quantity(dish.dish_id)))
        if rows.stop < len(results):
            lines.append("\n⋮", style="dim")
        menu_widget.update(lines)

    def _refresh_cart(self) -> None:
        try:
            cart_widget = self.query_one("#cart-list", Static)
            total_widget = self.query_one("#cart-total", Static)
        except NoMatches:
            return

        entries = self.cart.entries
        total_widget.update(f"{self.cart.item_count} item(s)  Total {format_price(self.cart.total)}")
        if not entries:
            self.cart_index = None
            cart_widget.update("(cart is empty)")
            return
        if self.cart_index is not None and self.cart_index >= len(entries):
            self.cart_index = len(entries) - 1

        rows = scroll_window(len(entries), _rows_available(cart_widget), self.cart_index)
        lines = Text()
        for idx in rows:
            if idx > rows.start:
                lines.append("\n")
            selected = idx == self.cart_index and self.pane == "cart"
            lines.append("➤ " if selected else "  ")
            lines.append_text(format_cart_line(entries[idx]))
        cart_widget.update(lines)
