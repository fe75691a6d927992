"""Session-lifetime cache of dish display metadata keyed by dish reference."""

from __future__ import annotations

import asyncio
import logging
from types import MappingProxyType
from typing import Awaitable, Callable, Iterable, Mapping

from eatnow.models import Dish, PlacedOrder

logger = logging.getLogger(__name__)

DishFetcher = Callable[[str], Awaitable[Dish]]


def plan_dish_resolution(cache: Mapping[str, Dish], orders: Iterable[PlacedOrder]) -> list[str]:
    """Dish ids referenced by ``orders`` that are not cached yet, first-seen order."""
    planned: list[str] = []
    seen: set[str] = set()
    for order in orders:
        for dish_id in order.dish_ids():
            if dish_id in seen or dish_id in cache:
                continue
            seen.add(dish_id)
            planned.append(dish_id)
    return planned


def merge_dish_batch(cache: Mapping[str, Dish], fetched: Mapping[str, Dish]) -> dict[str, Dish]:
    """Return a new cache with ``fetched`` added; cached entries are never replaced."""
    merged = dict(cache)
    for dish_id, dish in fetched.items():
        merged.setdefault(dish_id, dish)
    return merged


class DishReferenceCache:
    """Lazy, additive lookup shared by every order card of a staff session.

    Unresolved and failed ids are indistinguishable: both are simply absent
    and get fetched again on the next resolution attempt.
    """

    def __init__(self, fetch: DishFetcher) -> None:
        self._fetch = fetch
        self._entries: dict[str, Dish] = {}
        self._pending: dict[str, asyncio.Future[Dish]] = {}

    @property
    def entries(self) -> Mapping[str, Dish]:
        return MappingProxyType(self._entries)

    def get(self, dish_id: str) -> Dish | None:
        return self._entries.get(dish_id)

    def __contains__(self, dish_id: object) -> bool:
        return dish_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def resolve(self, dish_id: str) -> Dish:
        """Return the cached dish, fetching it on first use."""
        cached = self._entries.get(dish_id)
        if cached is not None:
            return cached
        failures = await self.resolve_many([dish_id])
        if dish_id in failures:
            raise failures[dish_id]
        return self._entries[dish_id]

    async def resolve_many(self, dish_ids: Iterable[str]) -> dict[str, BaseException]:
        """Fetch every unresolved id in parallel and merge the batch at once.

        Returns the ids that failed, mapped to their error. Failures never
        abort the rest of the batch.
        """
        wanted = [dish_id for dish_id in dict.fromkeys(dish_ids) if dish_id not in self._entries]
        if not wanted:
            return {}

        owned: list[str] = []
        futures: list[asyncio.Future[Dish]] = []
        for dish_id in wanted:
            future = self._pending.get(dish_id)
            if future is None:
                future = asyncio.ensure_future(self._fetch(dish_id))
                self._pending[dish_id] = future
                owned.append(dish_id)
            futures.append(future)

        try:
            results = await asyncio.gather(*futures, return_exceptions=True)
        finally:
            for dish_id in owned:
                self._pending.pop(dish_id, None)

        fetched: dict[str, Dish] = {}
        failures: dict[str, BaseException] = {}
        for dish_id, result in zip(wanted, results):
            if isinstance(result, BaseException):
                failures[dish_id] = result
            else:
                fetched[dish_id] = result

        if fetched:
            self._entries = merge_dish_batch(self._entries, fetched)
        if failures:
            logger.warning(
                "dish_resolve_failed count=%d ids=%s",
                len(failures),
                ",".join(sorted(failures)),
            )
        logger.debug("dish_resolve_batch fetched=%d failed=%d cached=%d", len(fetched), len(failures), len(self._entries))
        return failures
