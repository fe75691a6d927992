"""Order status modal: shown after checkout and when reopening a past order."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import Static

from eatnow.models import PlacedOrder
from eatnow.placement import PlacementResult
from eatnow.rendering import format_price, status_badge
from eatnow.tracking import OrderSource, OrderStatusTracker


class ConfirmationModal(ModalScreen[None]):
    """Shows the order id and follows its status until dismissed."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("enter", "close", "Close"),
        ("q", "close", "Close"),
    ]

    CSS = """
    ConfirmationModal {
        align: center middle;
        background: $background 60%;
    }

    #confirmation-dialog {
        width: 48;
        height: auto;
        border: round $success;
        background: $panel;
        padding: 1 2;
    }

    #confirmation-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #confirmation-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    def __init__(
        self,
        result: PlacementResult,
        source: OrderSource | None = None,
        heading: str = "Order placed",
    ) -> None:
        super().__init__()
        self.result = result
        self.heading = heading
        self.status_note = ""
        self.tracker = (
            OrderStatusTracker(source, result.order_id, on_change=self._on_status, on_error=self._on_track_error)
            if source is not None
            else None
        )

    def compose(self) -> ComposeResult:
        with Container(id="confirmation-dialog"):
            yield Static(self.heading, id="confirmation-title")
            yield Static(id="confirmation-body")
            yield Static("Enter / Esc to continue", id="confirmation-help")

    def on_mount(self) -> None:
        self._refresh_body()
        if self.tracker is not None:
            self.tracker.start()

    def on_unmount(self) -> None:
        if self.tracker is not None:
            self.tracker.stop()

    def _on_status(self, order: PlacedOrder) -> None:
        self.status_note = ""
        self._refresh_body()

    def _on_track_error(self, message: str) -> None:
        self.status_note = message
        self._refresh_body()

    def _refresh_body(self) -> None:
        body = Text(style="white")
        body.append("Order ")
        body.append(f"#{self.result.order_id}", style="bold")
        body.append(f"\n{self.result.item_count} item(s), {format_price(self.result.total)}")

        order = self.tracker.order if self.tracker is not None else None
        if order is None:
            body.append("\nThe kitchen will start on it shortly.", style="dim")
        else:
            body.append("\nStatus ")
            body.append_text(status_badge(order.status))
            if self.tracker.finished:
                body.append("\nYour order is ready.", style="bold #5fbf72")
        if self.status_note:
            body.append(f"\n{self.status_note}", style="italic #ffb3b3")
        self.query_one("#confirmation-body", Static).update(body)

    def action_close(self) -> None:
        self.dismiss()
