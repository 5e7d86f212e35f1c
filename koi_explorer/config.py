from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .constants import TAP_SYNC_URL


@dataclass(frozen=True)
class Settings:
    tap_url: str = TAP_SYNC_URL
    api_url: str = "http://localhost:3001/api/exoplanets"
    upstream_timeout: float = 30.0
    port: int = 3001
    log_format: str = "json"
    secret_key: str = "dev"


def load_settings() -> Settings:
    """Read settings from the environment (and a local .env file if present)."""
    load_dotenv()

    defaults = Settings()
    return Settings(
        tap_url=os.getenv("KOI_TAP_URL", defaults.tap_url),
        api_url=os.getenv("KOI_API_URL", defaults.api_url),
        upstream_timeout=float(os.getenv("KOI_UPSTREAM_TIMEOUT", defaults.upstream_timeout)),
        port=int(os.getenv("PORT", defaults.port)),
        log_format=os.getenv("KOI_LOG_FORMAT", defaults.log_format).lower(),
        secret_key=os.getenv("KOI_SECRET_KEY", defaults.secret_key),
    )
