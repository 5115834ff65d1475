from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    # Single studio-local clock; every occurrence date/time is read in this zone
    TIMEZONE: str = "Europe/Paris"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Default placeholder keeps local/test runs from failing when no identity
    # provider is configured. Real deployments should override via env.
    SUPABASE_JWT_SECRET: str = "test-jwt-secret"

    # Background jobs
    REDIS_URL: str = "redis://localhost:6379/0"
    CRON_SECRET: Optional[str] = None
    RECONCILE_INTERVAL_MINUTES: int = 15

    # Booking rules
    CANCELLATION_REFUND_WINDOW_HOURS: int = 24
    ABSENCE_GRACE_MINUTES: int = 60
    SESSION_DEBIT_ON_ATTEND: bool = False
    SESSION_DEBIT_ON_ABSENT: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
