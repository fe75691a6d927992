"""SQLite-backed durable client storage: namespaced keys and placed-order receipts."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from eatnow.config import DB_PATH


@dataclass(frozen=True)
class OrderReceipt:
    """Local record of an order this client placed."""

    order_id: str
    branch_id: str
    total: int
    item_count: int
    placed_at: str


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ClientStorage:
    """Key/value store holding JSON documents under fixed namespaced keys."""

    def __init__(self, db_path: str | Path = DB_PATH) -> None:
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def bootstrap_schema(self) -> None:
        """Create storage tables if they do not already exist."""
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS order_receipts (
                    order_id TEXT PRIMARY KEY,
                    branch_id TEXT NOT NULL,
                    total INTEGER NOT NULL,
                    item_count INTEGER NOT NULL,
                    placed_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_order_receipts_placed_at
                    ON order_receipts(placed_at);
                """
            )

    def load_json(self, key: str) -> Any | None:
        """Return the decoded document stored under ``key``, or None."""
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    def save_json(self, key: str, value: Any) -> None:
        """Replace the document under ``key`` in a single transaction."""
        encoded = json.dumps(value, ensure_ascii=False)
        with self._connect() as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, encoded, _utc_now_iso()),
                )

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            with conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def save_order_receipt(self, order_id: str, branch_id: str, total: int, item_count: int) -> OrderReceipt:
        """Record a successfully placed order for the customer's history."""
        receipt = OrderReceipt(
            order_id=order_id,
            branch_id=branch_id,
            total=total,
            item_count=item_count,
            placed_at=_utc_now_iso(),
        )
        with self._connect() as conn:
            with conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO order_receipts (order_id, branch_id, total, item_count, placed_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (receipt.order_id, receipt.branch_id, receipt.total, receipt.item_count, receipt.placed_at),
                )
        return receipt

    def list_order_receipts(self, limit: int = 20) -> list[OrderReceipt]:
        """Most recent receipts first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT order_id, branch_id, total, item_count, placed_at
                FROM order_receipts ORDER BY placed_at DESC LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [OrderReceipt(*row) for row in rows]
