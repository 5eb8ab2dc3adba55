from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from http.cookiejar import CookieJar as StdlibCookieJar
from http.cookiejar import DefaultCookiePolicy

import httpx

from vrchat_session import __version__
from vrchat_session.infrastructure.adapters.http.interceptors import CookiePipeline

LIBRARY_ID = f"vrchat-session v{__version__}"


@dataclass(frozen=True)
class Application:
    """Identifies the calling application in the user-agent, as the service requires."""

    name: str
    version: str | int
    contact: str

    def user_agent(self) -> str:
        return f"{self.name}/{self.version} ({self.contact}) via {LIBRARY_ID}"


def _disabled_cookie_jar() -> StdlibCookieJar:
    # Accepts no domain, so httpx never stores or sends cookies on its own.
    return StdlibCookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def create_client(
    application: Application,
    pipeline: CookiePipeline,
    *,
    base_url: str,
    timeout: float = 45.0,
    headers: Mapping[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Shared async client with the cookie pipeline installed as event hooks.

    - Cookies come only from the pipeline (httpx's own jar is disabled)
    - Default headers are merged under the user-agent
    - ``transport`` lets tests plug in ``httpx.MockTransport``

    Args:
        application (Application): Identity sent in the user-agent.
        pipeline (CookiePipeline): Hooks installed on every request and response.
        base_url (str): API root the paths are resolved against.
        timeout (float, optional): Timeout for requests. Defaults to 45.0.
        headers (Mapping[str, str] | None, optional): Extra default headers. Defaults to None.
        transport (httpx.AsyncBaseTransport | None, optional): Custom transport. Defaults to None.

    Returns:
        httpx.AsyncClient: Client to share between every operation.
    """
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        headers={
            "Accept": "application/json",
            **dict(headers or {}),
            "User-Agent": application.user_agent(),
        },
        cookies=_disabled_cookie_jar(),
        event_hooks=pipeline.event_hooks(),
        transport=transport,
    )
