"""Configuration settings for stationsync."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``STATIONSYNC_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STATIONSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars not in model
    )

    # ":memory:" keeps the mirror for the lifetime of the process only
    db_path: str = ":memory:"
    busy_timeout_ms: int = 5000

    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
