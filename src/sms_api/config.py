from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


class Settings(BaseModel):
    # --- Credentials (basic auth: account SID / auth token) ---
    account_sid: str | None = Field(default_factory=lambda: os.getenv("TWILIO_ACCOUNT_SID"))
    auth_token: str | None = Field(default_factory=lambda: os.getenv("TWILIO_AUTH_TOKEN"))

    # Default sender for `messages send` when --from is omitted
    from_number: str | None = Field(default_factory=lambda: os.getenv("TWILIO_FROM_NUMBER"))

    # --- REST endpoint ---
    base_url: str = Field(
        default_factory=lambda: os.getenv("TWILIO_BASE_URL", "https://api.twilio.com")
    )
    api_version: str = Field(default_factory=lambda: os.getenv("TWILIO_API_VERSION", "2010-04-01"))

    # Per-request timeout in seconds, used when the caller passes no deadline
    timeout: float = Field(default_factory=lambda: _env_float("TWILIO_TIMEOUT", 30.0))

    # PageSize sent by the CLI when listing
    page_size: int = Field(default_factory=lambda: _env_int("TWILIO_PAGE_SIZE", 50))


@lru_cache
def get_settings() -> Settings:
    return Settings()
