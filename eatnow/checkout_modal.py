"""Checkout modal: table number, payment method and order notes."""

from __future__ import annotations

from dataclasses import dataclass

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from eatnow.constant import DEFAULT_PAYMENT_METHOD, PAYMENT_METHODS
from eatnow.rendering import format_price


@dataclass(frozen=True)
class CheckoutChoice:
    """Values confirmed by the customer."""

    table_number: int
    payment_method: str
    notes: str


class CheckoutModal(ModalScreen[CheckoutChoice | None]):
    """Collect checkout details before the order is submitted."""

    CSS = """
    CheckoutModal {
        align: center middle;
        background: $background 60%;
    }

    #checkout-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #checkout-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #checkout-body {
        color: white;
        margin-bottom: 1;
    }

    #checkout-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #checkout-help {
        color: #dddddd;
    }
    """

    _FIELDS = ("table", "payment", "notes")
    _MAX_NOTES_LENGTH = 200

    def __init__(self, total: int, item_count: int, table_number: int | None = None) -> None:
        super().__init__()
        self.total = total
        self.item_count = item_count
        self.table_value = str(table_number) if table_number else ""
        self.payment_methods = list(PAYMENT_METHODS)
        self.payment_index = self.payment_methods.index(DEFAULT_PAYMENT_METHOD)
        self.notes_value = ""
        self.field_index = 0
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="checkout-dialog"):
            yield Static("Checkout", id="checkout-title")
            yield Static(id="checkout-body")
            yield Static(id="checkout-error")
            yield Static(
                "Tab next field. ←/→ payment. Enter place order. Esc cancel.",
                id="checkout-help",
            )

    def on_mount(self) -> None:
        self._refresh_content()

    @property
    def current_field(self) -> str:
        return self._FIELDS[self.field_index]

    def on_key(self, event: Key) -> None:
        if event.key == "escape":
            self.dismiss(None)
            event.stop()
            return

        if event.key in {"tab", "down"}:
            self.field_index = (self.field_index + 1) % len(self._FIELDS)
        elif event.key in {"shift+tab", "up"}:
            self.field_index = (self.field_index - 1) % len(self._FIELDS)
        elif event.key == "enter":
            self._confirm()
        elif event.key == "backspace":
            self._backspace()
        elif self.current_field == "payment" and event.key in {"left", "right", "space"}:
            delta = -1 if event.key == "left" else 1
            self.payment_index = (self.payment_index + delta) % len(self.payment_methods)
        elif event.is_printable and event.character:
            self._type(event.character)
        else:
            return

        self._refresh_content()
        event.stop()

    def _type(self, character: str) -> None:
        if self.current_field == "table":
            if character.isdigit() and len(self.table_value) < 3:
                self.table_value += character
                self.error = ""
        elif self.current_field == "notes":
            if len(self.notes_value) < self._MAX_NOTES_LENGTH:
                self.notes_value += character

    def _backspace(self) -> None:
        if self.current_field == "table":
            self.table_value = self.table_value[:-1]
        elif self.current_field == "notes":
            self.notes_value = self.notes_value[:-1]

    def _confirm(self) -> None:
        if not self.table_value:
            self.error = "Table number is required."
            self.field_index = 0
            return

        parsed = int(self.table_value)
        if parsed < 1:
            self.error = "Table number must be at least 1."
            self.field_index = 0
            return

        self.dismiss(
            CheckoutChoice(
                table_number=parsed,
                payment_method=self.payment_methods[self.payment_index],
                notes=self.notes_value.strip(),
            )
        )

    def _refresh_content(self) -> None:
        body = self.query_one("#checkout-body", Static)
        error_widget = self.query_one("#checkout-error", Static)

        content = Text(style="white")
        content.append(f"{self.item_count} item(s)  ")
        content.append(format_price(self.total), style="bold")
        content.append("\n\n")

        rows = (
            ("table", "Table", self.table_value),
            ("payment", "Payment", PAYMENT_METHODS[self.payment_methods[self.payment_index]]),
            ("notes", "Notes", self.notes_value),
        )
        for idx, (name, label, value) in enumerate(rows):
            if idx > 0:
                content.append("\n")
            active = name == self.current_field
            pointer = "➤ " if active else "  "
            cursor = "|" if active and name != "payment" else ""
            content.append(f"{pointer}{label}: ", style="bold white" if active else "white")
            content.append(f"{value}{cursor}")

        body.update(content)
        error_widget.update(self.error or "")
