from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx

from vrchat_session.application.ports.cache_port import CacheKey, ExpiringCachePort
from vrchat_session.domain.cookie import Cookie, CookieCollection, parse_cookie

logger = logging.getLogger(__name__)

COOKIES_ID = "cookies"


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


def origin_of(url: httpx.URL | str) -> str:
    """scheme://host[:port] of a URL, default ports omitted."""
    url = httpx.URL(url)
    origin = f"{url.scheme}://{url.host}"
    if url.port is not None:
        origin += f":{url.port}"
    return origin


class CookieJar:
    """Origin-scoped cookie storage on top of an expiring cache.

    Expired cookies are dropped from what callers see on every read but are
    not purged from the store there; the cache TTL (earliest expiry of the
    collection) takes care of eviction.
    """

    def __init__(self, cache: ExpiringCachePort, *, clock: Clock | None = None) -> None:
        self.cache = cache
        self.clock = clock or SystemClock()

    async def _ensure_ready(self) -> None:
        if not self.cache.is_ready():
            await self.cache.start()

    async def get_cookies(self, origin: str) -> CookieCollection:
        """Returns the unexpired cookies stored for an origin.

        Args:
            origin (str): ``scheme://host[:port]``.

        Returns:
            CookieCollection: Cookies by name. Empty when nothing is stored.
        """
        await self._ensure_ready()
        cached = await self.cache.get(CacheKey(origin, COOKIES_ID))
        if cached is None:
            return {}

        now = self.clock.now().timestamp()
        stored: dict[str, Any] = cached.item or {}
        cookies = {
            name: cookie
            for name, cookie in (
                (name, Cookie.from_dict(name, data)) for name, data in stored.items()
            )
            if not cookie.is_expired(now)
        }
        logger.debug("get_cookies origin=%s names=%s", origin, list(cookies))
        return cookies

    async def save_cookies(self, origin: str, set_cookie_headers: Sequence[str]) -> None:
        """Parses ``Set-Cookie`` values and merges them over the stored cookies.

        Args:
            origin (str): ``scheme://host[:port]``.
            set_cookie_headers (Sequence[str]): Raw header values, in arrival order.
        """
        if not set_cookie_headers:
            return

        now = self.clock.now().timestamp()
        cookies = await self.get_cookies(origin)
        for header in set_cookie_headers:
            cookie = parse_cookie(header, now=now)
            if cookie.name:
                cookies[cookie.name] = cookie

        if not cookies:
            return

        # Cookies already dead on arrival are deletions from the server
        live = {name: cookie for name, cookie in cookies.items() if not cookie.is_expired(now)}
        ttl = self._ttl_for(live.values(), now) if live else 0.0
        logger.debug("save_cookies origin=%s names=%s ttl=%s", origin, list(live), ttl)
        await self._ensure_ready()
        await self.cache.set(
            CacheKey(origin, COOKIES_ID),
            {name: cookie.to_dict() for name, cookie in live.items()},
            ttl,
        )

    @staticmethod
    def _ttl_for(cookies: Any, now: float) -> float:
        """Seconds until the earliest-expiring cookie, inf for session-only."""
        expiries = [c.expires_at for c in cookies if c.expires_at is not None]
        if not expiries:
            return math.inf
        return max(min(expiries) - now, 0.0)
