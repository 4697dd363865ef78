from datetime import date
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings): # load all key=value pairs from .env
    """ Engine settings and provider keys"""
    DATABASE_URL: str = "sqlite:///./daily_alchemy.db"

    # oracle
    ORACLE_MODEL: str = "gpt-4o-mini"
    OPENAI_API_KEY: Optional[str] = None
    GEMINI_KEY: Optional[str] = None
    ORACLE_TIMEOUT_SECONDS: float = 20.0
    ORACLE_MAX_RETRIES: int = 2
    ORACLE_BACKOFF_SECONDS: float = 1.0
    ORACLE_CONTEXT_SIZE: int = 200

    # per-key discovery lease, TTL must cover the oracle timeout plus 40 s
    LEASE_TTL_SECONDS: float = 60.0
    LEASE_MAX_WAIT_SECONDS: float = 10.0
    LEASE_BACKOFF_INITIAL_SECONDS: float = 0.05
    LEASE_BACKOFF_MAX_SECONDS: float = 1.0

    # planner
    MAX_PATH_LENGTH: int = 12

    # daily puzzles
    PUZZLE_EPOCH: date = date(2026, 1, 23)
    PUZZLE_TIME_ZONE: str = "America/New_York"
    FREE_ARCHIVE_DAYS: int = 4
    DAILY_TIME_LIMIT_SECONDS: int = 600

    ADMIN_TOKEN: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file = BASE_DIR/".env",
        env_file_encoding = "utf-8",
        extra="ignore",
    )

settings = Settings()
