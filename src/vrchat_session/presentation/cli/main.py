from __future__ import annotations

import asyncio
import logging

import httpx
import typer

from vrchat_session.application.ports.cache_port import ExpiringCachePort
from vrchat_session.client import VRChat
from vrchat_session.config import settings
from vrchat_session.domain.errors import LoginFailedError
from vrchat_session.infrastructure.adapters.cache.memory_cache import InMemoryCache
from vrchat_session.infrastructure.adapters.cache.sqlite_cache import SQLiteCache
from vrchat_session.infrastructure.adapters.http.httpx_client import Application

app = typer.Typer(help="VRChat session CLI")


@app.callback()
def main() -> None:
    """VRChat session CLI"""


def _cache() -> ExpiringCachePort:
    return SQLiteCache(settings.cookie_db) if settings.cookie_db else InMemoryCache()


async def _login(username: str, password: str, secret: str, prompt_code: bool) -> str:
    application = Application(settings.app_name, settings.app_version, settings.app_contact)
    two_factor_code = (lambda: typer.prompt("Two-factor code")) if prompt_code else None
    cache = _cache()
    try:
        async with VRChat(
            application,
            credentials=cache,
            base_url=settings.base_url,
            timeout=settings.http_timeout,
        ) as vrchat:
            result = await vrchat.login(
                username,
                password,
                two_factor_secret=secret or None,
                two_factor_code=two_factor_code,
            )
    finally:
        await cache.stop()
    user = result.unwrap()
    return str(user.get("displayName", username))


@app.command()
def login(
    username: str = typer.Option(settings.username, "--username", "-u"),
    password: str = typer.Option(settings.password, "--password", "-p", hide_input=True),
    secret: str = typer.Option(settings.totp_secret, "--secret", "-s", help="Base32 TOTP secret"),
    code: bool = typer.Option(False, "--code", "-c", help="Prompt for a two-factor code"),
    debug: bool = typer.Option(settings.debug, "--debug"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if not username or not password:
        typer.echo("Username and password are required (options or VRCHAT_USERNAME/VRCHAT_PASSWORD)", err=True)
        raise typer.Exit(code=2)
    try:
        name = asyncio.run(_login(username, password, secret, code))
    except (LoginFailedError, httpx.HTTPError) as e:
        typer.echo(f"Couldn't login to VRChat: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Logged in as {name}!")
