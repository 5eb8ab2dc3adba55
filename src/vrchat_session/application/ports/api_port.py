from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, Literal, Protocol, TypeVar

import httpx

from vrchat_session.domain.errors import LoginFailedError

T = TypeVar("T")

Credentials = Literal["omit", "include"]


@dataclass
class ApiResult(Generic[T]):
    """Outcome of one API operation: either ``data`` or ``error`` is set."""

    data: T | None = None
    error: Any | None = None
    request: httpx.Request | None = None
    response: httpx.Response | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise LoginFailedError(self.error)
        return self.data  # type: ignore[return-value]


class CurrentUserOperation(Protocol):
    """Fetches the authenticated user (or the factor-required marker)."""

    async def __call__(
        self,
        client: httpx.AsyncClient,
        *,
        headers: Mapping[str, str] | None = None,
        credentials: Credentials | None = None,
    ) -> ApiResult[dict[str, Any]]: ...


class VerifyFactorOperation(Protocol):
    """Submits a second-factor code; ``data`` is ``{"verified": bool}``."""

    async def __call__(
        self, client: httpx.AsyncClient, *, body: Mapping[str, str]
    ) -> ApiResult[dict[str, Any]]: ...
