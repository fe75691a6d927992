"""Debug logging to a file; Textual owns the terminal."""

from __future__ import annotations

import logging
from pathlib import Path

from eatnow.config import DEBUG_LOG_PATH

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(path: str = DEBUG_LOG_PATH, level: int = logging.DEBUG) -> logging.Logger:
    """Attach a file handler to the ``eatnow`` logger and return it."""
    logger = logging.getLogger("eatnow")
    logger.setLevel(level)
    if any(getattr(handler, "_eatnow_file", False) for handler in logger.handlers):
        return logger

    try:
        log_file = Path(path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError:
        # Logging must never interfere with app flow.
        handler = logging.NullHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    handler._eatnow_file = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return logger
