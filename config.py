"""Environment-driven settings for the SpendSense app."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

DEFAULT_DATA_PATH = "data/spendsense.json"


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    data_path: str
    timezone: str
    log_level: str
    http_timeout: float
    default_daily_limit: float
    default_currency: str

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Read settings from `.env` and the process environment (or a given mapping)."""
    if env is None:
        load_dotenv()
        env = os.environ

    url = str(env.get("SUPABASE_URL", "")).strip().rstrip("/")
    key = str(env.get("SUPABASE_ANON_KEY", "")).strip()
    if bool(url) != bool(key):
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set together (.env)")

    return Settings(
        supabase_url=url,
        supabase_anon_key=key,
        data_path=str(env.get("SPENDSENSE_DATA_PATH", DEFAULT_DATA_PATH)).strip() or DEFAULT_DATA_PATH,
        timezone=str(env.get("SPENDSENSE_TIMEZONE", "UTC")).strip() or "UTC",
        log_level=str(env.get("SPENDSENSE_LOG_LEVEL", "INFO")).strip().upper() or "INFO",
        http_timeout=float(env.get("SPENDSENSE_HTTP_TIMEOUT", 8.0)),
        default_daily_limit=float(env.get("SPENDSENSE_DEFAULT_DAILY_LIMIT", 100.0)),
        default_currency=str(env.get("SPENDSENSE_DEFAULT_CURRENCY", "USD")).strip().upper() or "USD",
    )
