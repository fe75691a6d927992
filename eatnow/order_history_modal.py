"""Orders this client placed, newest first."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.screen import ModalScreen
from textual.widgets import Static

from eatnow.confirmation_modal import ConfirmationModal
from eatnow.persistence import OrderReceipt
from eatnow.placement import PlacementResult
from eatnow.rendering import format_price
from eatnow.tracking import OrderSource


class OrderHistoryModal(ModalScreen[None]):
    BINDINGS = [
        ("j", "move(1)", "Down"),
        ("k", "move(-1)", "Up"),
        ("down", "move(1)", "Down"),
        ("up", "move(-1)", "Up"),
        ("enter", "open_selected", "Track"),
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
    ]

    CSS = """
    OrderHistoryModal {
        align: center middle;
        background: $background 60%;
    }

    #history-dialog {
        width: 56;
        height: auto;
        max-height: 80%;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #history-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }
    """

    def __init__(self, receipts: list[OrderReceipt], source: OrderSource | None = None) -> None:
        super().__init__()
        self.receipts = receipts
        self.source = source
        self.index = 0

    def compose(self) -> ComposeResult:
        with Container(id="history-dialog"):
            yield Static("Your orders", id="history-title")
            yield Static(id="history-list")
            yield Static("Enter track status. Esc close.", id="history-help")

    def on_mount(self) -> None:
        self._refresh_list()

    def action_move(self, delta: int) -> None:
        if self.receipts:
            self.index = (self.index + delta) % len(self.receipts)
            self._refresh_list()

    def action_open_selected(self) -> None:
        if not self.receipts:
            return
        receipt = self.receipts[self.index]
        result = PlacementResult(order_id=receipt.order_id, total=receipt.total, item_count=receipt.item_count)
        self.app.push_screen(ConfirmationModal(result, self.source, heading=f"Order #{receipt.order_id}"))

    def action_close(self) -> None:
        self.dismiss()

    def _refresh_list(self) -> None:
        widget = self.query_one("#history-list", Static)
        if not self.receipts:
            widget.update(Text("No orders yet.", style="dim"))
            return
        lines = Text(style="white")
        for idx, receipt in enumerate(self.receipts):
            if idx > 0:
                lines.append("\n")
            lines.append("➤ " if idx == self.index else "  ")
            lines.append(f"#{receipt.order_id}", style="bold")
            lines.append(f"  {receipt.item_count} item(s)  {format_price(receipt.total)}")
            lines.append(f"  {receipt.placed_at[:16].replace('T', ' ')}", style="dim")
        widget.update(lines)
