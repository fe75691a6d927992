"""Staff dashboard: the branch's open orders in three status columns."""

from __future__ import annotations

import logging

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.screen import Screen
from textual.widgets import Footer, Header, Static

from eatnow.api import ApiClient
from eatnow.constant import ADVANCE_LABELS, BOARD_STATUSES, STATUS_LABELS
from eatnow.dish_cache import DishReferenceCache
from eatnow.errors import TransitionError, ValidationError
from eatnow.feed import FeedState, OrderFeedPoller
from eatnow.models import PlacedOrder
from eatnow.printer import print_kitchen_ticket, printer_unavailable_reason
from eatnow.rendering import format_order_card
from eatnow.transitions import StatusTransitioner

logger = logging.getLogger(__name__)


class StaffDashboardScreen(Screen):
    """Polls the branch feed while mounted and lets staff advance orders."""

    CSS = """
    #status-bar {
        height: 2;
        padding: 0 1;
    }

    #board {
        height: 1fr;
    }

    .column {
        width: 1fr;
        border: round $secondary;
        padding: 0 1;
    }

    .column.-selected {
        border: round $primary;
    }

    .column-title {
        text-style: bold;
        margin-bottom: 1;
    }

    .column-body {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("j", "move(1)", "Down"),
        ("k", "move(-1)", "Up"),
        ("down", "move(1)", "Down"),
        ("up", "move(-1)", "Up"),
        ("h", "switch_column(-1)", "Prev column"),
        ("l", "switch_column(1)", "Next column"),
        ("left", "switch_column(-1)", "Prev column"),
        ("right", "switch_column(1)", "Next column"),
        ("enter", "advance_selected", "Advance"),
        ("r", "refresh_feed", "Refresh"),
        ("p", "print_selected", "Print ticket"),
    ]

    column_index = reactive(0)
    row_index = reactive(0)

    def __init__(self, api: ApiClient, branch_id: str, dish_cache: DishReferenceCache | None = None) -> None:
        super().__init__()
        self.api = api
        self.branch_id = branch_id
        self.dish_cache = dish_cache if dish_cache is not None else DishReferenceCache(api.get_branch_dish)
        self.poller = OrderFeedPoller(
            api,
            branch_id,
            self.dish_cache,
            on_change=self._on_feed_change,
            on_error=self._on_feed_error,
        )
        self.transitioner = StatusTransitioner(api, self.poller)
        self._queued: set[str] = set()

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="status-bar")
        with Horizontal(id="board"):
            for status in BOARD_STATUSES:
                with Vertical(classes="column", id=f"column-{status.lower()}"):
                    yield Static(STATUS_LABELS[status], classes="column-title", id=f"title-{status.lower()}")
                    yield Static(classes="column-body", id=f"body-{status.lower()}")
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = f"Branch {self.branch_id} orders"
        self._refresh_board()
        self.poller.start()

    def on_unmount(self) -> None:
        self.poller.stop()

    def _on_feed_change(self, poller: OrderFeedPoller) -> None:
        if self.poller.stopped:
            return
        self._refresh_board()

    def _on_feed_error(self, message: str) -> None:
        if self.poller.stopped:
            return
        self.notify(message, severity="warning", timeout=4)
        self._refresh_status_bar()

    @property
    def selected_status(self) -> str:
        return BOARD_STATUSES[self.column_index]

    def selected_order(self) -> PlacedOrder | None:
        orders = self.poller.view.bucket(self.selected_status)
        if not orders:
            return None
        return orders[min(self.row_index, len(orders) - 1)]

    def action_move(self, delta: int) -> None:
        orders = self.poller.view.bucket(self.selected_status)
        if not orders:
            return
        self.row_index = (min(self.row_index, len(orders) - 1) + delta) % len(orders)
        self._refresh_board()

    def action_switch_column(self, delta: int) -> None:
        self.column_index = (self.column_index + delta) % len(BOARD_STATUSES)
        self.row_index = 0
        self._refresh_board()

    def action_refresh_feed(self) -> None:
        self.run_worker(self._refresh_now(), group="feed")

    async def _refresh_now(self) -> None:
        await self.poller.refresh()

    def action_advance_selected(self) -> None:
        order = self.selected_order()
        if order is None:
            return
        if self.is_busy(order.order_id):
            return
        if order.status not in ADVANCE_LABELS:
            self.notify(f"Order #{order.order_id} is ready for pickup.", severity="information")
            return
        self._queued.add(order.order_id)
        self._refresh_board()
        self.run_worker(self._advance(order), group="transition")

    def is_busy(self, order_id: str) -> bool:
        """True from the key press until the status request settles."""
        return order_id in self._queued or self.transitioner.is_in_flight(order_id)

    async def _advance(self, order: PlacedOrder) -> None:
        try:
            updated = await self.transitioner.advance(order)
        except ValidationError as exc:
            self.notify(exc.message, severity="warning")
        except TransitionError as exc:
            self.notify(f"Order #{order.order_id}: {exc.message}", severity="error")
        else:
            self.notify(f"Order #{updated.order_id} → {STATUS_LABELS.get(updated.status, updated.status)}")
        finally:
            self._queued.discard(order.order_id)
        if not self.poller.stopped:
            self._refresh_board()

    def action_print_selected(self) -> None:
        order = self.selected_order()
        if order is None:
            return
        self.run_worker(lambda: self._print(order), thread=True, group="printer")

    def _print(self, order: PlacedOrder) -> None:
        reason = printer_unavailable_reason()
        if reason is not None:
            self.app.call_from_thread(self.notify, reason, severity="warning")
            return
        try:
            print_kitchen_ticket(order, self.dish_cache)
        except Exception as exc:
            logger.warning("ticket_print_failed order_id=%s error=%r", order.order_id, exc)
            self.app.call_from_thread(self.notify, f"Print failed: {exc}", severity="error")
            return
        self.app.call_from_thread(self.notify, f"Ticket printed for #{order.order_id}")

    def _refresh_board(self) -> None:
        self._refresh_status_bar()
        view = self.poller.view
        for idx, status in enumerate(BOARD_STATUSES):
            try:
                column = self.query_one(f"#column-{status.lower()}", Vertical)
                title = self.query_one(f"#title-{status.lower()}", Static)
                body = self.query_one(f"#body-{status.lower()}", Static)
            except NoMatches:
                return
            orders = view.bucket(status)
            column.set_class(idx == self.column_index, "-selected")
            title.update(f"{STATUS_LABELS[status]} ({len(orders)})")
            body.update(self._render_column(orders, selected=idx == self.column_index))

    def _render_column(self, orders: list[PlacedOrder], selected: bool) -> Text:
        if not orders:
            return Text("(no orders)", style="dim")
        selected_row = min(self.row_index, len(orders) - 1)
        text = Text()
        for idx, order in enumerate(orders):
            if idx > 0:
                text.append("\n\n")
            text.append("➤ " if selected and idx == selected_row else "  ")
            text.append_text(
                format_order_card(order, self.dish_cache, busy=self.is_busy(order.order_id))
            )
        return text

    def _refresh_status_bar(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        poller = self.poller
        if poller.state is FeedState.IDLE:
            status = "Loading orders…"
        elif poller.last_synced_at is None:
            status = "Waiting for first sync…"
        else:
            synced = poller.last_synced_at.astimezone().strftime("%H:%M:%S")
            status = f"Synced {synced}"
            if poller.state is FeedState.FETCHING:
                status += " · refreshing"
        order = self.selected_order()
        hint = ""
        if order is not None and order.status in ADVANCE_LABELS:
            hint = f"Enter: {ADVANCE_LABELS[order.status]}"
        bar.update(f"{status}    {len(poller.orders)} open orders    {hint}")
