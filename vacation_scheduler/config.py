import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from environment variables or a local ``.env`` file.

    The vacation rule knobs (``LONG_BLOCK_DAYS``, ``DEFAULT_ALLOWANCE_DAYS``,
    ``REQUIRE_EXACT_ALLOWANCE``) apply to every request the process handles.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Vacation Scheduler"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://vacations:vacations@db:5432/vacations"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]
    log_level: str = "INFO"
    create_tables_on_startup: bool = False

    # Vacation rules.
    long_block_days: int = Field(default=14, ge=1)
    default_allowance_days: int = Field(default=0, ge=0)
    require_exact_allowance: bool = False

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level

    @property
    def docs_enabled(self) -> bool:
        return self.environment != "production"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Settings for this process, loaded on first call."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings | None) -> None:
    """Replace the cached settings. ``None`` forces a reload from the environment."""
    global _settings
    _settings = settings
