"""Session management (cookies + multi-factor login) for the VRChat web API."""

__version__ = "0.1.0"

from vrchat_session.application.cookie_jar import CookieJar  # noqa: E402
from vrchat_session.application.ports.api_port import ApiResult  # noqa: E402
from vrchat_session.application.ports.cache_port import CacheKey, CachedItem, ExpiringCachePort  # noqa: E402
from vrchat_session.client import VRChat  # noqa: E402
from vrchat_session.domain.cookie import Cookie, parse_cookie, serialize_cookie, serialize_cookies  # noqa: E402
from vrchat_session.domain.errors import LoginFailedError, LoginIssue, VRChatError  # noqa: E402
from vrchat_session.infrastructure.adapters.cache.memory_cache import InMemoryCache  # noqa: E402
from vrchat_session.infrastructure.adapters.cache.sqlite_cache import SQLiteCache  # noqa: E402
from vrchat_session.infrastructure.adapters.http.httpx_client import Application  # noqa: E402

__all__ = [
    "__version__",
    "Application",
    "ApiResult",
    "CacheKey",
    "CachedItem",
    "Cookie",
    "CookieJar",
    "ExpiringCachePort",
    "InMemoryCache",
    "LoginFailedError",
    "LoginIssue",
    "SQLiteCache",
    "VRChat",
    "VRChatError",
    "parse_cookie",
    "serialize_cookie",
    "serialize_cookies",
]
