"""
Legal Records Registry configuration.

Values come from the environment (or a .env file) and are read once.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from legal_registry import __version__

# Largest value the SQLite INTEGER columns hold
SQL_INT_MAX = 2**63 - 1


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Legal Records Registry"
    app_version: str = __version__
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/registry.db"
    persist_registry: bool = False

    # Registry defaults (seed a fresh registry only)
    max_records: int = Field(default=10000, gt=0, le=SQL_INT_MAX)
    registration_fee: int = Field(default=500, gt=0, le=SQL_INT_MAX)
    governance_threshold: int = Field(default=51, ge=1, le=100)

    # Fee ledger: unset means unmetered
    opening_balance: Optional[int] = Field(default=None, ge=0, le=SQL_INT_MAX)

    # Logical time
    genesis_block_height: int = Field(default=0, ge=0, le=SQL_INT_MAX)


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance (FastAPI dependency)."""
    return Settings()
