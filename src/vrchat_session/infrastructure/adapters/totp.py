from __future__ import annotations

from collections.abc import Callable

import pyotp


def totp_code_provider(secret: str) -> Callable[[], str]:
    """Code provider deriving the current authenticator code from a base32 secret."""
    totp = pyotp.TOTP(secret.replace(" ", "").upper())

    def provide() -> str:
        return totp.now()

    return provide
