from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env if present
load_dotenv()


def _flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    username: str = os.getenv("VRCHAT_USERNAME", "")
    password: str = os.getenv("VRCHAT_PASSWORD", "")
    totp_secret: str = os.getenv("VRCHAT_TOTP_SECRET", "")
    app_name: str = os.getenv("VRCHAT_APP_NAME", "vrchat-session")
    app_version: str = os.getenv("VRCHAT_APP_VERSION", "0.1.0")
    app_contact: str = os.getenv("VRCHAT_APP_CONTACT", "")
    base_url: str = os.getenv("VRCHAT_BASE_URL", "https://vrchat.com/api/1/")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "45"))
    cookie_db: str = os.getenv("VRCHAT_COOKIE_DB", "")
    debug: bool = _flag("VRCHAT_DEBUG")


settings = Settings()
