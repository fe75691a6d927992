"""Customer cart with write-through durable persistence."""

from __future__ import annotations

import copy
import logging
import sqlite3

from eatnow.config import CART_STORAGE_KEY
from eatnow.models import CartEntry, Dish
from eatnow.persistence import ClientStorage

logger = logging.getLogger(__name__)


class CartStore:
    """Pending dish selections for the active customer session.

    Entries keep insertion order and are unique by dish id. Every mutation
    writes the whole cart to storage before returning; a failed write is
    logged and the in-memory cart stays authoritative.
    """

    def __init__(self, storage: ClientStorage, key: str = CART_STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key
        self._entries: list[CartEntry] = []

    def load(self) -> None:
        """Rehydrate from storage; unreadable data is treated as an empty cart."""
        try:
            raw = self._storage.load_json(self._key)
            entries = [CartEntry.from_dict(item) for item in raw or []]
        except (sqlite3.Error, OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("cart_load_failed key=%s error=%r", self._key, exc)
            entries = []

        merged: dict[str, CartEntry] = {}
        for entry in entries:
            existing = merged.get(entry.dish_id)
            if existing is None:
                merged[entry.dish_id] = entry
            else:
                existing.quantity += entry.quantity
        self._entries = list(merged.values())

    @property
    def entries(self) -> list[CartEntry]:
        return [copy.copy(entry) for entry in self._entries]

    def snapshot(self) -> list[CartEntry]:
        """Independent copy of the cart for checkout."""
        return self.entries

    @property
    def item_count(self) -> int:
        return sum(entry.quantity for entry in self._entries)

    @property
    def total(self) -> int:
        return sum(entry.price * entry.quantity for entry in self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def get_item_quantity(self, dish_id: str) -> int:
        entry = self._find(dish_id)
        return entry.quantity if entry is not None else 0

    def add_item(self, dish: Dish, quantity: int = 1) -> None:
        quantity = max(1, int(quantity))
        entry = self._find(dish.dish_id)
        if entry is not None:
            entry.quantity += quantity
        else:
            self._entries.append(
                CartEntry(
                    dish_id=dish.dish_id,
                    name=dish.name,
                    price=dish.price,
                    quantity=quantity,
                    category=dish.category,
                    image_url=dish.image_url,
                )
            )
        self._persist()

    def update_quantity(self, dish_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(dish_id)
            return
        entry = self._find(dish_id)
        if entry is None:
            return
        entry.quantity = int(quantity)
        self._persist()

    def remove_item(self, dish_id: str) -> None:
        remaining = [entry for entry in self._entries if entry.dish_id != dish_id]
        if len(remaining) == len(self._entries):
            return
        self._entries = remaining
        self._persist()

    def clear_cart(self) -> None:
        self._entries = []
        self._persist()

    def discard_ordered(self, ordered: list[CartEntry]) -> None:
        """Drop the quantities an accepted order contained.

        Anything added after the order snapshot was taken stays in the cart.
        """
        ordered_quantity: dict[str, int] = {}
        for entry in ordered:
            ordered_quantity[entry.dish_id] = ordered_quantity.get(entry.dish_id, 0) + entry.quantity

        remaining: list[CartEntry] = []
        for entry in self._entries:
            left = entry.quantity - ordered_quantity.get(entry.dish_id, 0)
            if left > 0:
                entry.quantity = left
                remaining.append(entry)
        self._entries = remaining
        self._persist()

    def _find(self, dish_id: str) -> CartEntry | None:
        for entry in self._entries:
            if entry.dish_id == dish_id:
                return entry
        return None

    def _persist(self) -> None:
        try:
            self._storage.save_json(self._key, [entry.to_dict() for entry in self._entries])
        except (sqlite3.Error, OSError, TypeError, ValueError) as exc:
            logger.warning("cart_save_failed key=%s entries=%d error=%r", self._key, len(self._entries), exc)
