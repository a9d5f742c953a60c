from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv


_BASE_DIR = Path(__file__).resolve().parent
# Always load the env file that lives next to this settings module.
load_dotenv(_BASE_DIR / ".env")


def _required(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"{key} must be set")
    return value


def _csv_env(key: str, default: str | None = None) -> list[str]:
    raw = os.getenv(key, default or "")
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _bool_env(key: str, default: bool = False) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    default_timezone: str
    booking_window_days: int
    default_slot_minutes: int
    strict_slot_check: bool
    store_timeout: float
    notification_channels: List[str]
    cors_origins: List[str]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        supabase_url=_required("SUPABASE_URL"),
        supabase_key=_required("SUPABASE_KEY"),
        default_timezone=os.getenv("DEFAULT_TIMEZONE", "America/Los_Angeles"),
        booking_window_days=int(os.getenv("BOOKING_WINDOW_DAYS", "21")),
        default_slot_minutes=int(os.getenv("DEFAULT_SLOT_MINUTES", "30")),
        strict_slot_check=_bool_env("STRICT_SLOT_CHECK"),
        store_timeout=float(os.getenv("STORE_TIMEOUT_SECONDS", "20")),
        notification_channels=_csv_env("NOTIFICATION_CHANNELS", "email"),
        cors_origins=_csv_env("BACKEND_CORS_ORIGINS", "*"),
    )
