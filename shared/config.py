"""
Configuration module - Central access point for environment variables.

CRITICAL: Access ALL environment variables through this module.
NEVER use os.getenv() directly in application code.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Redis
    REDIS_URL: str = Field(
        default="redis://redis:6379/0",
        description="Redis connection string"
    )
    REDIS_OPERATION_TIMEOUT_SECONDS: float = Field(
        default=0.5,
        description="Upper bound for a single Redis call before it is reported as unavailable"
    )

    # Session context
    SESSION_KEY_PREFIX: str = Field(default="session")
    SESSION_DEFAULT_TTL_SECONDS: int = Field(
        default=1800,
        description="TTL applied on every save (30 minutes)"
    )
    SESSION_MAX_TTL_SECONDS: int = Field(
        default=3600,
        description="Hard cap measured from session creation (60 minutes)"
    )
    SESSION_EXTENSION_SECONDS: int = Field(
        default=900,
        description="Default extension applied by extend() (15 minutes)"
    )
    SESSION_MAX_CHOICES: int = Field(
        default=10,
        description="Choice history window (oldest entries evicted)"
    )

    # Popular times
    POPULAR_TIMES_KEY_PREFIX: str = Field(default="popular")
    POPULAR_TIMES_CACHE_TTL_SECONDS: int = Field(default=3600)
    POPULAR_TIMES_LOOKBACK_DAYS: int = Field(default=90)
    POPULAR_TIMES_MIN_BOOKINGS: int = Field(default=3)
    POPULAR_TIMES_MIN_CONFIDENCE: float = Field(default=0.0)
    POPULAR_TIMES_LIMIT: int = Field(default=5)
    POPULAR_TIMES_CONFIDENCE_Z: float = Field(
        default=1.96,
        description="z value for the Wilson score interval (95%)"
    )
    POPULAR_TIMES_WARM_INTERVAL_SECONDS: int = Field(
        default=1800,
        description="Cache warmer run interval (30 minutes)"
    )
    POPULAR_TIMES_WARM_SALON_IDS: str = Field(
        default="",
        description="Comma-separated salon ids warmed by the background worker"
    )

    # Dialog
    DEFAULT_LANGUAGE: str = Field(default="en")
    DEFAULT_BUSINESS_TYPE: str = Field(default="beauty_salon")
    TIMEZONE: str = Field(default="Europe/Madrid")
    AVAILABILITY_WINDOW_DAYS: int = Field(
        default=7,
        description="Days searched around the requested date for alternatives"
    )
    MAX_SLOT_OPTIONS: int = Field(
        default=10,
        description="Maximum slots rendered in a single card"
    )
    STARRED_SLOTS: int = Field(
        default=3,
        description="Top-ranked alternatives marked with a star"
    )
    MESSAGE_HISTORY_LIMIT: int = Field(
        default=50,
        description="Messages read back when recovering a session from history"
    )

    # Application
    LOG_LEVEL: str = Field(default="INFO")

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def warm_salon_ids(self) -> list[str]:
        """Salon ids configured for the cache warmer."""
        return [s.strip() for s in self.POPULAR_TIMES_WARM_SALON_IDS.split(",") if s.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Returns:
        Settings instance loaded from environment variables
    """
    return Settings()
