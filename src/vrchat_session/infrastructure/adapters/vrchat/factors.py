from __future__ import annotations

import re

from vrchat_session.application.use_cases.login import FactorStrategy
from vrchat_session.infrastructure.adapters.vrchat.operations import (
    verify_2fa,
    verify_2fa_email_code,
    verify_recovery_code,
)

_RECOVERY_CODE = re.compile(r"^[A-Za-z0-9]{4}-?[A-Za-z0-9]{4}$")


def is_six_characters(code: str) -> bool:
    return len(code) == 6


def is_recovery_code(code: str) -> bool:
    return bool(_RECOVERY_CODE.match(code))


TOTP_STRATEGY = FactorStrategy("totp", is_six_characters, verify_2fa)
EMAIL_OTP_STRATEGY = FactorStrategy("email_otp", is_six_characters, verify_2fa_email_code)
RECOVERY_CODE_STRATEGY = FactorStrategy("recovery_code", is_recovery_code, verify_recovery_code)

# Only the authenticator app is tried by default; the others are opt-in.
DEFAULT_FACTOR_STRATEGIES: tuple[FactorStrategy, ...] = (TOTP_STRATEGY,)
