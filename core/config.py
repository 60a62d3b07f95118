"""Application configuration with environment-specific profiles.

Supports dev, staging, and production environments via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class Settings:
    """Immutable application settings resolved from environment."""

    database_url: str
    app_env: str = "dev"
    log_level: str = "INFO"

    # Progress bookkeeping
    week_starts_on: str = "sunday"
    resolve_conflict_retries: int = 1

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 200

    # HTTP
    request_id_header_name: str = "X-Request-ID"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def week_start_index(self) -> int:
        """Python weekday index (Monday=0) of the first day of a ledger week."""
        return WEEKDAY_NAMES.index(self.week_starts_on)


# -- Environment profiles --

_ENV_PROFILES: dict[str, dict] = {
    "dev": {
        "log_level": "DEBUG",
    },
    "staging": {
        "log_level": "INFO",
    },
    "production": {
        "log_level": "WARNING",
        "cors_origins": [],
    },
}


def get_database_url() -> str:
    """Resolve database URL from env var or local default.

    Resolution order:
    1. DATABASE_URL environment variable
    2. Local SQLite file for dev setups
    """
    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    return "sqlite:///./progress.db"


def _parse_week_start(raw: str) -> str:
    value = (raw or "").strip().lower()
    if value not in WEEKDAY_NAMES:
        raise ValueError(f"WEEK_STARTS_ON must be one of {WEEKDAY_NAMES}, got {raw!r}")
    return value


def _parse_origins(raw: str | None, default: list[str]) -> list[str]:
    if raw is None:
        return list(default)
    return [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build Settings by merging environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        database_url=get_database_url(),
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        week_starts_on=_parse_week_start(os.getenv("WEEK_STARTS_ON", "sunday")),
        resolve_conflict_retries=int(os.getenv("RESOLVE_CONFLICT_RETRIES", "1")),
        default_page_size=int(os.getenv("DEFAULT_PAGE_SIZE", "50")),
        max_page_size=int(os.getenv("MAX_PAGE_SIZE", "200")),
        request_id_header_name=os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID"),
        cors_origins=_parse_origins(os.getenv("CORS_ORIGINS"), profile.get("cors_origins", ["*"])),
    )
