"""
Countdown Bot — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

SUPPORTED_LOCALES = ("ru", "en")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # SQLite
    DATABASE_PATH: str = "data/timers.db"

    # Civil time zone used to resolve picked dates and render them
    TIMEZONE: str = "Europe/Moscow"

    # User-facing language: "ru" | "en"
    LOCALE: str = "ru"

    # Seconds between two status updates of a running timer
    TICK_SECONDS: float = 5.0

    # Upper bound on in-flight /setdate pickers kept in memory
    MAX_SELECTION_SESSIONS: int = 1000

    # Security (empty → everyone may use the bot)
    ALLOWED_USER_IDS: list[int] = []

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown TIMEZONE: {v!r}") from exc
        return v

    @field_validator("LOCALE")
    @classmethod
    def check_locale(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in SUPPORTED_LOCALES:
            raise ValueError(f"LOCALE must be one of {SUPPORTED_LOCALES}, got {v!r}")
        return v

    @field_validator("TICK_SECONDS")
    @classmethod
    def check_tick(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("TICK_SECONDS must be positive")
        return v


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/timers.db"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Moscow"),
        LOCALE=os.getenv("LOCALE", "ru"),
        TICK_SECONDS=os.getenv("TICK_SECONDS", "5"),
        MAX_SELECTION_SESSIONS=os.getenv("MAX_SELECTION_SESSIONS", "1000"),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
