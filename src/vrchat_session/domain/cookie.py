from __future__ import annotations

import math
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC
from email.utils import parsedate_to_datetime
from typing import Any


@dataclass(frozen=True)
class Cookie:
    """A single cookie as observed in a ``Set-Cookie`` header.

    ``expires_at`` is an absolute POSIX timestamp (seconds) or ``None`` for a
    session cookie. ``attributes`` keeps the directives (lower-cased names) for
    the jar only; they are never sent back to the server.
    """

    name: str
    value: str
    expires_at: float | None = None
    attributes: dict[str, str] = field(default_factory=dict)

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "expires_at": self.expires_at,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "Cookie":
        expires_at = data.get("expires_at")
        return cls(
            name=name,
            value=str(data.get("value", "")),
            expires_at=float(expires_at) if expires_at is not None else None,
            attributes=dict(data.get("attributes") or {}),
        )


CookieCollection = dict[str, Cookie]


def _parse_max_age(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        seconds = float(raw.strip())
    except ValueError:
        return None
    return seconds if math.isfinite(seconds) else None


def _parse_expires(raw: str | None) -> float | None:
    if not raw:
        return None
    try:
        expires = parsedate_to_datetime(raw.strip())
    except (TypeError, ValueError, IndexError):
        return None
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=UTC)
    return expires.timestamp()


def parse_cookie(header_value: str, *, now: float | None = None) -> Cookie:
    """Best-effort parse of one ``Set-Cookie`` header value. Never raises."""
    now = time.time() if now is None else now
    name, _, rest = header_value.partition("=")
    value, *raw_attributes = rest.split(";")

    attributes: dict[str, str] = {}
    for raw in raw_attributes:
        key, _, attr_value = raw.partition("=")
        key = key.strip().lower()
        if key:
            attributes[key] = attr_value.strip()

    max_age = _parse_max_age(attributes.get("max-age"))
    if max_age is not None:
        expires_at: float | None = now + max_age
    else:
        expires_at = _parse_expires(attributes.get("expires"))

    return Cookie(name=name.strip(), value=value.strip(), expires_at=expires_at, attributes=attributes)


def serialize_cookie(cookie: Cookie) -> str:
    return f"{cookie.name}={cookie.value}"


def serialize_cookies(cookies: Mapping[str, Cookie]) -> str:
    """Render a collection as a ``Cookie`` request header value."""
    return "; ".join(serialize_cookie(cookie) for cookie in cookies.values())
