from __future__ import annotations

import asyncio
import base64
import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx

from vrchat_session.application.ports.api_port import (
    ApiResult,
    CurrentUserOperation,
    VerifyFactorOperation,
)
from vrchat_session.domain.errors import (
    INVALID_TWO_FACTOR_CODE,
    MISSING_TWO_FACTOR,
    TOO_MANY_ATTEMPTS,
    LoginIssue,
)

logger = logging.getLogger(__name__)

FACTOR_REQUIRED_FIELD = "requiresTwoFactorAuth"

CodeProvider = Callable[[], str | Awaitable[str]]


class LoginState(str, Enum):
    START = "START"
    AWAITING_FACTOR = "AWAITING_FACTOR"
    VERIFYING = "VERIFYING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class FactorStrategy:
    """A way of verifying a second factor, chosen by the shape of the code."""

    name: str
    applies: Callable[[str], bool]
    verify: VerifyFactorOperation


def _encode_uri_component(value: str) -> str:
    return quote(value, safe="!*'()")


def basic_authorization(username: str, password: str) -> str:
    pair = f"{_encode_uri_component(username)}:{_encode_uri_component(password)}"
    return "Basic " + base64.b64encode(pair.encode("utf-8")).decode("ascii")


def requires_factor(data: Any) -> bool:
    return isinstance(data, dict) and FACTOR_REQUIRED_FIELD in data


def select_strategies(code: str, strategies: Sequence[FactorStrategy]) -> list[FactorStrategy]:
    return [strategy for strategy in strategies if strategy.applies(code)]


def classify_factor_results(results: Sequence[ApiResult[Any]]) -> LoginIssue | None:
    """None when any factor verified, else the most relevant issue.

    Priority is fixed (verified, then rate limited, then invalid) and does not
    depend on the order results completed in.
    """
    if any(isinstance(r.data, dict) and r.data.get("verified") for r in results):
        return None
    if any(r.response is not None and r.response.status_code == 429 for r in results):
        return TOO_MANY_ATTEMPTS
    return INVALID_TWO_FACTOR_CODE


class LoginUseCase:
    """Password login followed, when the service asks for it, by a second factor.

    START -> AWAITING_FACTOR -> VERIFYING -> SUCCEEDED | FAILED

    Domain failures come back as a ``LoginIssue`` in ``ApiResult.error`` and are
    never retried here. Error responses from the service are returned as they
    are and httpx exceptions propagate.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        get_current_user: CurrentUserOperation,
        strategies: Sequence[FactorStrategy],
        totp_factory: Callable[[str], CodeProvider],
    ) -> None:
        self.client = client
        self.get_current_user = get_current_user
        self.strategies = tuple(strategies)
        self.totp_factory = totp_factory
        self.state = LoginState.START

    def _transition(self, state: LoginState) -> None:
        logger.debug("login %s -> %s", self.state.value, state.value)
        self.state = state

    def _fail(self, issue: LoginIssue, first: ApiResult[Any]) -> ApiResult[Any]:
        self._transition(LoginState.FAILED)
        logger.info("login failed: %s (%s)", issue.message, issue.status_code)
        return ApiResult(error=issue, request=first.request, response=first.response)

    def _code_provider(self, two_factor_secret: str | None, two_factor_code: CodeProvider | None) -> CodeProvider | None:
        if two_factor_code is not None:
            return two_factor_code
        if two_factor_secret:
            return self.totp_factory(two_factor_secret)
        return None

    async def _verify(self, code: str) -> list[ApiResult[Any]]:
        applicable = select_strategies(code, self.strategies)
        logger.debug("verifying with %s", [s.name for s in applicable])
        settled = await asyncio.gather(
            *(strategy.verify(self.client, body={"code": code}) for strategy in applicable),
            return_exceptions=True,
        )
        for outcome in settled:
            if isinstance(outcome, BaseException):
                raise outcome
        return list(settled)  # type: ignore[arg-type]

    async def execute(
        self,
        username: str,
        password: str,
        two_factor_secret: str | None = None,
        two_factor_code: CodeProvider | None = None,
    ) -> ApiResult[Any]:
        self.state = LoginState.START
        first = await self.get_current_user(
            self.client,
            credentials="omit",
            headers={"authorization": basic_authorization(username, password)},
        )
        if first.error is not None:
            self._transition(LoginState.FAILED)
            return first

        if not requires_factor(first.data):
            self._transition(LoginState.SUCCEEDED)
            return first

        self._transition(LoginState.AWAITING_FACTOR)
        provider = self._code_provider(two_factor_secret, two_factor_code)
        if provider is None:
            return self._fail(MISSING_TWO_FACTOR, first)

        code = provider()
        if inspect.isawaitable(code):
            code = await code

        self._transition(LoginState.VERIFYING)
        issue = classify_factor_results(await self._verify(str(code)))
        if issue is not None:
            return self._fail(issue, first)

        self._transition(LoginState.SUCCEEDED)
        return await self.get_current_user(self.client)
