from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from vrchat_session.application.cookie_jar import Clock, CookieJar
from vrchat_session.application.ports.api_port import ApiResult
from vrchat_session.application.ports.cache_port import ExpiringCachePort
from vrchat_session.application.use_cases.login import CodeProvider, FactorStrategy, LoginUseCase
from vrchat_session.infrastructure.adapters.cache.memory_cache import InMemoryCache
from vrchat_session.infrastructure.adapters.http.httpx_client import Application, create_client
from vrchat_session.infrastructure.adapters.http.interceptors import CookiePipeline
from vrchat_session.infrastructure.adapters.totp import totp_code_provider
from vrchat_session.infrastructure.adapters.vrchat import operations
from vrchat_session.infrastructure.adapters.vrchat.factors import DEFAULT_FACTOR_STRATEGIES


class VRChat:
    """Session-aware VRChat API client.

    Every call made through ``client`` gets the cookies stored for its origin
    and every response's ``Set-Cookie`` headers are merged back into
    ``credentials``, the shared expiring cache (in-memory unless given).

    Args:
        application: name/version/contact sent in the user-agent.
        credentials: cache holding the cookie jar. Defaults to ``InMemoryCache``.
        base_url: API root. Defaults to ``https://vrchat.com/api/1/``.
        timeout: httpx timeout in seconds.
        headers: extra default headers.
        transport: custom httpx transport (e.g. ``httpx.MockTransport``).
        factor_strategies: second-factor strategies tried by ``login``.
        clock: time source for cookie expiry.
    """

    def __init__(
        self,
        application: Application,
        *,
        credentials: ExpiringCachePort | None = None,
        base_url: str = operations.BASE_URL,
        timeout: float = 45.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        factor_strategies: Sequence[FactorStrategy] = DEFAULT_FACTOR_STRATEGIES,
        clock: Clock | None = None,
    ) -> None:
        # A cache passed in is shared and owned by the caller
        self._owns_credentials = credentials is None
        self.credentials: ExpiringCachePort = credentials if credentials is not None else InMemoryCache()
        self.jar = CookieJar(self.credentials, clock=clock)
        self.pipeline = CookiePipeline(self.jar, base_url=base_url)
        self.client = create_client(
            application,
            self.pipeline,
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        self.factor_strategies = tuple(factor_strategies)

    async def __aenter__(self) -> "VRChat":
        await self.credentials.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client, and the cache only when this instance created it."""
        await self.client.aclose()
        if self._owns_credentials:
            await self.credentials.stop()

    async def login(
        self,
        username: str,
        password: str,
        *,
        two_factor_secret: str | None = None,
        two_factor_code: CodeProvider | None = None,
    ) -> ApiResult[dict[str, Any]]:
        """Log in, completing the second factor when the service asks for one.

        ``two_factor_code`` (sync or async, no arguments) overrides
        ``two_factor_secret`` when both are given.
        """
        use_case = LoginUseCase(
            self.client,
            get_current_user=operations.get_current_user,
            strategies=self.factor_strategies,
            totp_factory=totp_code_provider,
        )
        return await use_case.execute(username, password, two_factor_secret, two_factor_code)

    async def get_current_user(self) -> ApiResult[dict[str, Any]]:
        return await operations.get_current_user(self.client)
