from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Kolkata"

    # Orders REST API (the system of record for orders)
    ORDERS_API_URL: str = "http://localhost:5000/v1"
    ORDERS_API_TOKEN: Optional[str] = None
    ORDERS_API_TIMEOUT: float = 10.0

    # Supabase
    # Placeholder keeps local/test runs from failing; real deployments override via env.
    SUPABASE_JWT_SECRET: str = "test-jwt-secret"

    # Order rules
    REFUND_REASON_MAX_LENGTH: int = 500
    DAILY_SERIES_MAX_DAYS: int = 92

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("ORDERS_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
