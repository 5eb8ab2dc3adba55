from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from vrchat_session.application.ports.api_port import ApiResult, Credentials

BASE_URL = "https://vrchat.com/api/1/"

CURRENT_USER_PATH = "auth/user"
VERIFY_TOTP_PATH = "auth/twofactorauth/totp/verify"
VERIFY_EMAIL_OTP_PATH = "auth/twofactorauth/emailotp/verify"
VERIFY_RECOVERY_CODE_PATH = "auth/twofactorauth/otp/verify"


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (ValueError, RecursionError):
        return response.text


def _to_result(response: httpx.Response) -> ApiResult[dict[str, Any]]:
    """Map a response onto data/error. Error bodies are passed through as sent."""
    body = _parse_body(response)
    if response.is_error:
        return ApiResult(error=body if body is not None else response.reason_phrase, request=response.request, response=response)
    return ApiResult(data=body, request=response.request, response=response)


async def get_current_user(
    client: httpx.AsyncClient,
    *,
    headers: Mapping[str, str] | None = None,
    credentials: Credentials | None = None,
) -> ApiResult[dict[str, Any]]:
    """Fetches the current user.

    Args:
        client (httpx.AsyncClient): Shared client with the cookie pipeline installed.
        headers (Mapping[str, str] | None, optional): Extra headers, e.g. ``authorization``. Defaults to None.
        credentials (Credentials | None, optional): ``"omit"`` skips the cookie jar for this call. Defaults to None.

    Returns:
        ApiResult: The user, or ``{"requiresTwoFactorAuth": [...]}`` when a second factor is needed.
    """
    extensions = {"credentials": credentials} if credentials else None
    response = await client.get(CURRENT_USER_PATH, headers=headers, extensions=extensions)
    return _to_result(response)


async def _verify(client: httpx.AsyncClient, path: str, body: Mapping[str, str]) -> ApiResult[dict[str, Any]]:
    response = await client.post(path, json=dict(body))
    return _to_result(response)


async def verify_2fa(client: httpx.AsyncClient, *, body: Mapping[str, str]) -> ApiResult[dict[str, Any]]:
    """Verifies an authenticator app (TOTP) code.

    Args:
        client (httpx.AsyncClient): Shared client carrying the session cookie.
        body (Mapping[str, str]): ``{"code": ...}``.

    Returns:
        ApiResult: ``{"verified": bool}`` on success.
    """
    return await _verify(client, VERIFY_TOTP_PATH, body)


async def verify_2fa_email_code(client: httpx.AsyncClient, *, body: Mapping[str, str]) -> ApiResult[dict[str, Any]]:
    """Verifies a code received by email. Same arguments as ``verify_2fa``."""
    return await _verify(client, VERIFY_EMAIL_OTP_PATH, body)


async def verify_recovery_code(client: httpx.AsyncClient, *, body: Mapping[str, str]) -> ApiResult[dict[str, Any]]:
    """Verifies a one-time recovery code. Same arguments as ``verify_2fa``."""
    return await _verify(client, VERIFY_RECOVERY_CODE_PATH, body)
