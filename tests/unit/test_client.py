from __future__ import annotations

import base64
import json
import logging

import httpx
import pytest

from vrchat_session import Application, InMemoryCache, VRChat
from vrchat_session.domain.errors import TOO_MANY_ATTEMPTS
from vrchat_session.infrastructure.adapters.totp import totp_code_provider
from vrchat_session.infrastructure.adapters.vrchat.factors import (
    EMAIL_OTP_STRATEGY,
    RECOVERY_CODE_STRATEGY,
    TOTP_STRATEGY,
)
from tests.unit._fakes import FixedClock

APP = Application(name="Example", version=1, contact="https://example.com")
USER = {"id": "usr_1", "displayName": "Tupper"}


class FakeVRChat:
    """Tiny stand-in for the service: password -> totp -> session."""

    def __init__(self, *, requires_factor: bool = True, verify_status: int = 200, verified: bool = True) -> None:
        self.requires_factor = requires_factor
        self.verify_status = verify_status
        self.verified = verified
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        cookie = request.headers.get("cookie", "")

        if path == "/api/1/auth/user":
            if "authorization" in request.headers:
                if self.requires_factor:
                    return httpx.Response(
                        200,
                        json={"requiresTwoFactorAuth": ["totp", "otp"]},
                        headers=[("set-cookie", "auth=authcookie_1; Max-Age=3600; Path=/; HttpOnly")],
                    )
                return httpx.Response(
                    200, json=USER, headers=[("set-cookie", "auth=authcookie_1; Max-Age=3600; Path=/")]
                )
            if "auth=authcookie_1" in cookie:
                return httpx.Response(200, json=USER)
            return httpx.Response(401, json={"error": {"message": "Missing Credentials", "status_code": 401}})

        if path.endswith("/verify"):
            if self.verify_status != 200:
                return httpx.Response(self.verify_status, json={"error": {"message": "slow", "status_code": self.verify_status}})
            headers = [("set-cookie", "twoFactorAuth=tfa_1; Max-Age=600; Path=/")] if self.verified else []
            return httpx.Response(200, json={"verified": self.verified}, headers=headers)

        return httpx.Response(404)


def make_client(service: FakeVRChat, **kwargs) -> VRChat:
    return VRChat(APP, transport=httpx.MockTransport(service), **kwargs)


@pytest.mark.asyncio
async def test_login_with_totp_secret_establishes_session():
    service = FakeVRChat()
    async with make_client(service) as vrchat:
        res = await vrchat.login("user", "pass", two_factor_secret="JBSWY3DPEHPK3PXP")

        assert res.data == USER
        first, verify, refetch = service.requests
        assert "cookie" not in first.headers
        assert first.headers["authorization"].startswith("Basic ")
        assert verify.url.path == "/api/1/auth/twofactorauth/totp/verify"
        assert verify.headers["cookie"] == "auth=authcookie_1"
        code = json.loads(verify.content)["code"]
        assert len(code) == 6 and code.isdigit()
        assert refetch.headers["cookie"] == "auth=authcookie_1; twoFactorAuth=tfa_1"
        assert "authorization" not in refetch.headers

        again = await vrchat.get_current_user()
        assert again.data == USER


@pytest.mark.asyncio
async def test_login_without_factor_makes_no_verification_calls():
    service = FakeVRChat(requires_factor=False)
    async with make_client(service) as vrchat:
        res = await vrchat.login("user", "pass")
    assert res.data == USER
    assert len(service.requests) == 1


@pytest.mark.asyncio
async def test_rate_limited_login():
    service = FakeVRChat(verify_status=429)
    async with make_client(service) as vrchat:
        res = await vrchat.login("user", "pass", two_factor_code=lambda: "123456")
    assert res.error == TOO_MANY_ATTEMPTS
    assert res.data is None


@pytest.mark.asyncio
async def test_omitted_credentials_never_read_the_jar():
    service = FakeVRChat(requires_factor=False)
    cache = InMemoryCache()
    async with make_client(service, credentials=cache) as vrchat:
        await vrchat.login("user", "pass")
        await vrchat.login("user", "pass")
    assert all("cookie" not in r.headers for r in service.requests)


@pytest.mark.asyncio
async def test_empty_jar_sends_empty_cookie_header():
    service = FakeVRChat()
    async with make_client(service) as vrchat:
        res = await vrchat.get_current_user()
    assert res.error == {"error": {"message": "Missing Credentials", "status_code": 401}}
    assert service.requests[0].headers["cookie"] == ""


@pytest.mark.asyncio
async def test_expired_cookies_are_not_sent():
    clock = FixedClock()
    service = FakeVRChat(requires_factor=False)
    async with make_client(service, clock=clock) as vrchat:
        await vrchat.login("user", "pass")
        clock.advance(3600)
        res = await vrchat.get_current_user()
    assert service.requests[-1].headers["cookie"] == ""
    assert res.response.status_code == 401


@pytest.mark.asyncio
async def test_user_agent_identifies_application():
    service = FakeVRChat(requires_factor=False)
    async with make_client(service) as vrchat:
        await vrchat.login("user", "pass")
    ua = service.requests[0].headers["user-agent"]
    assert ua.startswith("Example/1 (https://example.com) via vrchat-session v")


@pytest.mark.asyncio
async def test_opt_in_strategies_are_dispatched_by_code_shape():
    service = FakeVRChat()
    strategies = (TOTP_STRATEGY, EMAIL_OTP_STRATEGY, RECOVERY_CODE_STRATEGY)
    async with make_client(service, factor_strategies=strategies) as vrchat:
        await vrchat.login("user", "pass", two_factor_code=lambda: "abcd-1234")
    paths = [r.url.path for r in service.requests]
    assert "/api/1/auth/twofactorauth/otp/verify" in paths
    assert "/api/1/auth/twofactorauth/totp/verify" not in paths


@pytest.mark.asyncio
async def test_diagnostics_log_without_disturbing_requests(caplog):
    caplog.set_level(logging.DEBUG, logger="vrchat_session.http")
    service = FakeVRChat()
    async with make_client(service) as vrchat:
        res = await vrchat.login("user", "pass", two_factor_code=lambda: "123456")
    assert res.data == USER
    messages = [r.getMessage() for r in caplog.records if r.name == "vrchat_session.http"]
    assert any(m.startswith("GET auth/user") for m in messages)
    assert any("POST auth/twofactorauth/totp/verify {'code': '123456'}" in m for m in messages)
    assert any(m.startswith("200 OK GET auth/user") for m in messages)


@pytest.mark.asyncio
async def test_diagnostics_tolerate_non_json_bodies(caplog):
    caplog.set_level(logging.DEBUG, logger="vrchat_session.http")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, content=b"<html>bad gateway</html>")

    async with VRChat(APP, transport=httpx.MockTransport(handler)) as vrchat:
        res = await vrchat.get_current_user()
    assert res.response.status_code == 502
    assert res.error == "<html>bad gateway</html>"
    messages = [r.getMessage() for r in caplog.records if r.name == "vrchat_session.http"]
    assert "502 Bad Gateway GET auth/user <html>bad gateway</html>" in messages


def test_totp_provider_matches_pyotp():
    import pyotp

    provide = totp_code_provider("jbsw y3dp ehpk 3pxp")
    assert provide() == pyotp.TOTP("JBSWY3DPEHPK3PXP").now()


@pytest.mark.asyncio
async def test_basic_header_is_base64_of_encoded_pair():
    service = FakeVRChat(requires_factor=False)
    async with make_client(service) as vrchat:
        await vrchat.login("me@example.com", "secret")
    raw = service.requests[0].headers["authorization"].removeprefix("Basic ")
    assert base64.b64decode(raw).decode() == "me%40example.com:secret"


@pytest.mark.asyncio
async def test_deeply_nested_json_does_not_break_diagnostics(caplog):
    caplog.set_level(logging.DEBUG, logger="vrchat_session.http")
    nested = b"[" * 200000 + b"]" * 200000

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=nested, headers={"content-type": "application/json"})

    async with VRChat(APP, transport=httpx.MockTransport(handler)) as vrchat:
        res = await vrchat.get_current_user()
    assert res.response.status_code == 200
    assert res.data == nested.decode()
    assert any(m.startswith("200 OK GET auth/user [[[") for m in (r.getMessage() for r in caplog.records))


@pytest.mark.asyncio
async def test_closing_one_client_keeps_a_shared_cache_running():
    shared = InMemoryCache()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=USER, headers=[("set-cookie", "auth=abc; Path=/")])

    first = VRChat(APP, credentials=shared, transport=httpx.MockTransport(handler))
    second = VRChat(APP, credentials=shared, transport=httpx.MockTransport(handler))
    async with first:
        await first.get_current_user()
    assert shared.is_ready()
    async with second:
        cookies = await second.jar.get_cookies("https://vrchat.com")
    assert cookies["auth"].value == "abc"
    assert shared.is_ready()
    await shared.stop()


@pytest.mark.asyncio
async def test_closing_a_client_stops_the_cache_it_created():
    async with VRChat(APP, transport=httpx.MockTransport(lambda request: httpx.Response(200, json=USER))) as vrchat:
        assert vrchat.credentials.is_ready()
    assert not vrchat.credentials.is_ready()
