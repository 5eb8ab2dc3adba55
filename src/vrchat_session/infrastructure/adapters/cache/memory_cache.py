from __future__ import annotations

import copy
import math
import time
from collections.abc import Callable
from typing import Any

from vrchat_session.application.ports.cache_port import CacheKey, CachedItem, ExpiringCachePort


class InMemoryCache(ExpiringCachePort):
    """Simple in-memory expiring cache. Not persistent.

    Items are deep-copied in and out so callers never share state with the
    store. Expired entries are evicted lazily when read.
    """

    def __init__(self, *, monotonic: Callable[[], float] = time.monotonic) -> None:
        self._monotonic = monotonic
        self._entries: dict[tuple[str, str], tuple[Any, float]] = {}
        self._ready = False

    async def start(self) -> None:
        self._ready = True

    async def stop(self) -> None:
        self._entries.clear()
        self._ready = False

    def is_ready(self) -> bool:
        return self._ready

    async def get(self, key: CacheKey) -> CachedItem | None:
        """Reads an entry, evicting it when its lifetime has run out.

        Args:
            key (CacheKey): Segment and id of the entry.

        Returns:
            CachedItem | None: A copy of the item with its remaining TTL, or None.
        """
        entry = self._entries.get((key.segment, key.id))
        if entry is None:
            return None
        item, deadline = entry
        remaining = deadline - self._monotonic()
        if remaining <= 0:
            del self._entries[(key.segment, key.id)]
            return None
        return CachedItem(item=copy.deepcopy(item), ttl=remaining)

    async def set(self, key: CacheKey, item: Any, ttl: float) -> None:
        """Stores a copy of an entry.

        Args:
            key (CacheKey): Segment and id of the entry.
            item (Any): Value to store.
            ttl (float): Lifetime in seconds. ``math.inf`` never expires; ``<= 0`` deletes.
        """
        if ttl <= 0:
            self._entries.pop((key.segment, key.id), None)
            return
        deadline = math.inf if math.isinf(ttl) else self._monotonic() + ttl
        self._entries[(key.segment, key.id)] = (copy.deepcopy(item), deadline)
