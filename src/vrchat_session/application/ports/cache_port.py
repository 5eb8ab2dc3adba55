from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol


class CacheKey(NamedTuple):
    segment: str
    id: str


@dataclass(frozen=True)
class CachedItem:
    item: Any
    ttl: float  # seconds remaining, math.inf when unbounded


class ExpiringCachePort(Protocol):
    """Lifecycle-managed key/value store with per-entry time-to-live.

    The cookie jar only relies on this contract, so any backing store
    (memory, SQLite, Redis...) can hold the session cookies.
    """

    async def start(self) -> None:
        """Initialize the store. Must be idempotent."""
        ...

    async def stop(self) -> None:
        """Release resources held by the store."""
        ...

    def is_ready(self) -> bool: ...

    async def get(self, key: CacheKey) -> CachedItem | None:
        """Return the live entry for ``key`` or None when absent or expired."""
        ...

    async def set(self, key: CacheKey, item: Any, ttl: float) -> None:
        """
        Store ``item`` under ``key`` for ``ttl`` seconds.

        ``math.inf`` keeps the entry until overwritten. A ``ttl`` of zero or
        less stores nothing and drops any previous entry.
        """
        ...
