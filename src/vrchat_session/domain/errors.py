from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LoginIssue:
    """Structured login failure synthesized locally (not by the service)."""

    message: str
    status_code: int

    def __str__(self) -> str:
        return self.message


MISSING_TWO_FACTOR = LoginIssue("Missing two-factor authentication, incomplete login flow", 400)
INVALID_TWO_FACTOR_CODE = LoginIssue("Invalid two-factor authentication code", 400)
TOO_MANY_ATTEMPTS = LoginIssue("Too many attempts, try again later", 429)


class VRChatError(Exception):
    """Base exception for all vrchat-session errors."""


class LoginFailedError(VRChatError):
    """Raised when a login result is unwrapped but carries an error."""

    def __init__(self, error: object) -> None:
        super().__init__(str(error))
        self.error = error
