from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from vrchat_session.application.cookie_jar import CookieJar, origin_of
from vrchat_session.domain.cookie import serialize_cookies

# Diagnostics are on when this logger is enabled for DEBUG.
http_logger = logging.getLogger("vrchat_session.http")

CREDENTIALS_EXTENSION = "credentials"


def diagnostics_enabled() -> bool:
    return http_logger.isEnabledFor(logging.DEBUG)


def _decode(raw: bytes) -> Any:
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return text


class CookiePipeline:
    """Request/response hooks for the shared ``httpx.AsyncClient``.

    httpx awaits the hooks one after the other in registration order:

    - request: ``log_request``, then ``inject_cookies``
    - response: ``capture_cookies``, then ``log_response``

    Only the cookie hooks have side effects (jar reads and writes). The log
    hooks observe and never raise.
    """

    def __init__(self, jar: CookieJar, *, base_url: str = "") -> None:
        self.jar = jar
        self.base_url = base_url

    def event_hooks(self) -> dict[str, list[Any]]:
        return {
            "request": [self.log_request, self.inject_cookies],
            "response": [self.capture_cookies, self.log_response],
        }

    def _path(self, url: httpx.URL) -> str:
        return str(url).replace(self.base_url, "") if self.base_url else str(url)

    async def log_request(self, request: httpx.Request) -> None:
        if not diagnostics_enabled():
            return
        try:
            body: Any = _decode(request.content) if request.content else None
        except httpx.RequestNotRead:
            body = "<stream>"
        http_logger.debug("%s %s %s", request.method, self._path(request.url), body)

    async def inject_cookies(self, request: httpx.Request) -> None:
        """Sets the ``cookie`` header from the jar unless the request asks to omit credentials.

        Args:
            request (httpx.Request): Outgoing request, mutated in place.
        """
        if request.extensions.get(CREDENTIALS_EXTENSION) == "omit":
            return
        cookies = await self.jar.get_cookies(origin_of(request.url))
        request.headers["cookie"] = serialize_cookies(cookies)

    async def capture_cookies(self, response: httpx.Response) -> None:
        """Merges the response's ``Set-Cookie`` headers into the jar for its origin.

        Args:
            response (httpx.Response): Incoming response.
        """
        await self.jar.save_cookies(
            origin_of(response.request.url),
            response.headers.get_list("set-cookie"),
        )

    async def log_response(self, response: httpx.Response) -> None:
        if not diagnostics_enabled():
            return
        request = response.request
        try:
            await response.aread()
            body: Any = _decode(response.content)
        except (httpx.HTTPError, httpx.StreamError) as e:
            http_logger.debug("could not read response body: %s", e)
            body = None
        http_logger.debug(
            "%s %s %s %s %s",
            response.status_code,
            response.reason_phrase,
            request.method,
            self._path(request.url),
            body,
        )
