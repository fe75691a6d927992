"""Kitchen ticket printing on a USB ESC/POS thermal printer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from time import sleep
from typing import Iterator

from eatnow.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from eatnow.dish_cache import DishReferenceCache
from eatnow.models import PlacedOrder
from eatnow.rendering import dish_label

_RULE_HEIGHT_PX = 20
_RULE_THICKNESS_PX = 5
_RULE_STRIPE_PX = 2
_RULE_STRIPE_PAUSE_SECONDS = 0.1
_RIGHT_GUTTER_PX = 8
# Headroom below full-size rows so descenders survive thermal output.
_ROW_HEADROOM_PX = 20
_FEED_BEFORE_CUT_PX = 60
_FONT_OVERRIDE_ENV = "EATNOW_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
)


@dataclass(frozen=True)
class TicketRow:
    """One printed row; ``small`` rows use the note font."""

    text: str
    small: bool = False


def ticket_lines(order: PlacedOrder, cache: DishReferenceCache) -> list[str]:
    """Item and note text printed below the ticket header."""
    return [row.text for row in ticket_rows(order, cache)]


def ticket_rows(order: PlacedOrder, cache: DishReferenceCache) -> list[TicketRow]:
    rows = [TicketRow(f"{line.quantity}x {dish_label(line.dish_id, cache)}") for line in order.lines]
    if order.notes:
        rows.append(TicketRow(f"  * {order.notes}", small=True))
    return rows


def _font_candidates() -> Iterator[str]:
    override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    if override:
        yield override
    yield PRINTER_FONT_PATH
    yield from _LINUX_FONT_FALLBACKS


def resolve_printer_font_path() -> str:
    """First existing font among the env override, the configured path and Linux fallbacks."""
    tried: list[str] = []
    for candidate in _font_candidates():
        if not candidate or candidate in tried:
            continue
        tried.append(candidate)
        if Path(candidate).is_file():
            return candidate
    raise RuntimeError(f"No usable printer font found. Set {_FONT_OVERRIDE_ENV}. Tried: {', '.join(tried)}")


def printer_unavailable_reason() -> str | None:
    """Why a ticket cannot be printed right now, or None when it can."""
    try:
        import escpos.printer  # noqa: F401
        from PIL import ImageFont
    except ImportError as exc:
        return f"Printer support is not installed ({exc.name})."
    try:
        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except (OSError, RuntimeError) as exc:
        return f"Ticket font unavailable: {exc}"
    return None


def _blank(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def _text_box(text: str, font: object) -> tuple[int, int, int, int]:
    from PIL import Image, ImageDraw

    return ImageDraw.Draw(Image.new("1", (1, 1), color=1)).textbbox((0, 0), text, font=font)


def _render_row(text: str, font: object, height_px: int) -> object:
    from PIL import ImageDraw

    img = _blank(height_px)
    left, top, _, bottom = _text_box(text, font)
    y = (height_px - (bottom - top)) // 2 - top
    ImageDraw.Draw(img).text((PRINTER_LEFT_INDENT_PX - left, y), text, font=font, fill=0)
    return img


def _render_header(order: PlacedOrder, font: object) -> object:
    """Order id on the left, table number flush right."""
    from PIL import ImageDraw

    left_text = f"#{order.order_id}"
    right_text = f"T{order.table_number}" if order.table_number is not None else ""
    left_box = _text_box(left_text, font)
    right_box = _text_box(right_text, font) if right_text else (0, 0, 0, 0)
    padding = 4
    height = max(26, max(left_box[3] - left_box[1], right_box[3] - right_box[1]) + padding * 4)

    img = _blank(height)
    draw = ImageDraw.Draw(img)
    draw.text((PRINTER_LEFT_INDENT_PX, padding - left_box[1]), left_text, font=font, fill=0)
    if right_text:
        x = PRINTER_WIDTH_PX - _RIGHT_GUTTER_PX - right_box[2]
        draw.text((x, padding - right_box[1]), right_text, font=font, fill=0)
    return img


def _print_rule(printer: object) -> None:
    """Print a solid rule in thin stripes, pausing so the head stays cool."""
    from PIL import ImageDraw

    rule = _blank(_RULE_HEIGHT_PX)
    top = (_RULE_HEIGHT_PX - _RULE_THICKNESS_PX) // 2
    ImageDraw.Draw(rule).rectangle((0, top, PRINTER_WIDTH_PX - 1, top + _RULE_THICKNESS_PX - 1), fill=0)
    for y in range(0, _RULE_HEIGHT_PX, _RULE_STRIPE_PX):
        printer.image(rule.crop((0, y, PRINTER_WIDTH_PX, min(_RULE_HEIGHT_PX, y + _RULE_STRIPE_PX))))
        if y + _RULE_STRIPE_PX < _RULE_HEIGHT_PX:
            sleep(_RULE_STRIPE_PAUSE_SECONDS)


def print_kitchen_ticket(order: PlacedOrder, cache: DishReferenceCache) -> None:
    """Print one order for the kitchen and cut the ticket."""
    rows = ticket_rows(order, cache)
    if not rows:
        return

    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    font_path = resolve_printer_font_path()
    item_font = ImageFont.truetype(font_path, PRINTER_FONT_SIZE)
    note_size = max(14, PRINTER_FONT_SIZE * 2 // 3)
    note_font = ImageFont.truetype(font_path, note_size)
    header_font = ImageFont.truetype(font_path, max(20, PRINTER_FONT_SIZE - 8))

    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    printer.image(_render_header(order, header_font))
    _print_rule(printer)
    for row in rows:
        if row.small:
            printer.image(_render_row(row.text, note_font, note_size + _ROW_HEADROOM_PX // 2))
        else:
            printer.image(_render_row(row.text, item_font, PRINTER_FONT_SIZE + _ROW_HEADROOM_PX))
    printer.image(_blank(_FEED_BEFORE_CUT_PX))
    printer.cut()
