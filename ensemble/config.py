"""
Ensemble — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from ensemble/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "data/ensemble.db"

    # Wall-clock timezone used for "now" (completion stamps, rollover base)
    TIMEZONE: str = "Europe/Paris"

    # Event edits: reject an unparseable date instead of keeping the old one
    STRICT_DATE_PARSING: bool = False

    # Notification inbox
    NOTIFICATION_PAGE_SIZE: int = 20

    # Households
    INVITE_CODE_LENGTH: int = 12

    @field_validator("STRICT_DATE_PARSING", mode="before")
    @classmethod
    def parse_bool(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in {"1", "true", "yes", "on"}

    @field_validator("NOTIFICATION_PAGE_SIZE", "INVITE_CODE_LENGTH", mode="before")
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value < 1:
            raise ValueError(f"Expected a positive integer, got {value}")
        return value


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/ensemble.db"),
        TIMEZONE=os.getenv("TIMEZONE", "Europe/Paris"),
        STRICT_DATE_PARSING=os.getenv("STRICT_DATE_PARSING", "false"),
        NOTIFICATION_PAGE_SIZE=os.getenv("NOTIFICATION_PAGE_SIZE", "20"),
        INVITE_CODE_LENGTH=os.getenv("INVITE_CODE_LENGTH", "12"),
    )


# Singleton — imported by all other modules as:
#   from ensemble.config import settings
settings = _load_settings()
