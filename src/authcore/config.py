"""authcore — configuration loaded from environment."""

from __future__ import annotations

import re
from datetime import timedelta

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEV_ACCESS_SECRET = "authcore-dev-access-secret-change-me-0000000000"
DEV_REFRESH_SECRET = "authcore-dev-refresh-secret-change-me-000000000"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str | int) -> timedelta:
    """Parse ``"15m"``, ``"7d"``, ``"3600"`` (or an int of seconds) into a timedelta."""
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r} (expected <int>[s|m|h|d])")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./authcore.db"

    # ── OTP ───────────────────────────────────────────────
    otp_expiry: int = 900
    otp_daily_limit: int = 5
    otp_max_attempts: int = 3
    otp_webhook_url: str = ""

    # ── JWT ───────────────────────────────────────────────
    jwt_access_secret: str = DEV_ACCESS_SECRET
    jwt_refresh_secret: str = DEV_REFRESH_SECRET
    jwt_access_expiry: str = "15m"
    jwt_refresh_expiry: str = "7d"
    jwt_algorithm: str = "HS256"

    # ── Token revocation ──────────────────────────────────
    blacklist_ttl: int = 86400
    blacklist_sweep_interval: int = 3600

    # ── App ───────────────────────────────────────────────
    app_name: str = "authcore"
    debug: bool = False
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("jwt_access_expiry", "jwt_refresh_expiry")
    @classmethod
    def _check_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.jwt_access_expiry)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.jwt_refresh_expiry)

    @property
    def uses_dev_secrets(self) -> bool:
        """True while either JWT secret is still the built-in development fallback."""
        return (
            self.jwt_access_secret == DEV_ACCESS_SECRET
            or self.jwt_refresh_secret == DEV_REFRESH_SECRET
        )
