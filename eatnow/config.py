"""Runtime configuration defaults for the API, storage, polling and printing."""

from __future__ import annotations

import os


def _env(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


API_BASE_URL = _env("EATNOW_API_BASE_URL", "http://localhost:5214/api")
REQUEST_TIMEOUT_SECONDS = float(_env("EATNOW_REQUEST_TIMEOUT", "15"))

# Staff feed refresh cadence.
POLL_INTERVAL_SECONDS = float(_env("EATNOW_POLL_INTERVAL", "10"))
# Customer-side order status refresh cadence.
ORDER_TRACK_INTERVAL_SECONDS = float(_env("EATNOW_ORDER_TRACK_INTERVAL", "20"))

DB_PATH = _env("EATNOW_DB_PATH", "data/eatnow.db")
DEBUG_LOG_PATH = _env("EATNOW_DEBUG_LOG", "/tmp/eatnow-debug.log")

# Namespaced storage keys.
CART_STORAGE_KEY = "eatnow_cart"
AUTH_STORAGE_KEY = "eatnow_auth"

PRINTER_USB_VENDOR_ID = int(_env("EATNOW_PRINTER_VENDOR_ID", "0x28E9"), 0)
PRINTER_USB_PRODUCT_ID = int(_env("EATNOW_PRINTER_PRODUCT_ID", "0x0289"), 0)
PRINTER_WIDTH_PX = int(_env("EATNOW_PRINTER_WIDTH", "384"))
PRINTER_FONT_SIZE = int(_env("EATNOW_PRINTER_FONT_SIZE", "40"))
PRINTER_FONT_PATH = _env("EATNOW_PRINTER_FONT_PATH", "/System/Library/Fonts/SFNS.ttf")
PRINTER_LEFT_INDENT_PX = int(_env("EATNOW_PRINTER_LEFT_INDENT", "16"))
