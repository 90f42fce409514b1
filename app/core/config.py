"""
Application configuration settings.

Central configuration module using Pydantic BaseSettings with environment variable support.
Loads from .env file and environment variables.
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists (python-dotenv)
env_path = Path(".env")
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


def _parse_list(v):
    """Parse a list setting given as a JSON array or a comma-separated string."""
    if isinstance(v, str):
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App settings
    APP_NAME: str = "Resource Gallery"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = Field(default="local")
    DEBUG: bool = Field(default=False)

    # Database settings
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy database URL (overrides DB_PATH)",
    )
    DB_PATH: str = Field(default="./data/gallery.db", description="SQLite database file")
    DB_BUSY_TIMEOUT_MS: int = Field(default=5000)
    DB_RETRY_ATTEMPTS: int = Field(default=3, description="Attempts for locked/busy database errors")
    DB_RETRY_BASE_DELAY: float = Field(default=0.1, description="Base backoff delay in seconds")

    @property
    def sqlalchemy_database_uri(self) -> str:
        """
        Build SQLAlchemy database URI with priority:
        1. DATABASE_URL (explicit connection string)
        2. SQLite file at DB_PATH
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{self.DB_PATH}"

    # CORS settings
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default='["http://localhost:3000", "http://localhost:4200"]',
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from string or list."""
        return _parse_list(v)

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    LOG_DIR: str = Field(default="logs")

    # Admin password
    ADMIN_PASSWORD_HASH: Optional[str] = Field(
        default=None,
        description="bcrypt hash of the admin password. Stored in the database on first use.",
    )
    DEFAULT_ADMIN_PASSWORD: str = Field(
        default="admin123",
        description="Used only when neither the database nor ADMIN_PASSWORD_HASH holds a hash. Change it.",
    )

    # Categories and visibility
    CATEGORIES: Union[str, List[str]] = Field(
        default='["AIGC", "UXTips", "Learning", "星芒学社", "图库"]',
    )
    ADMIN_ONLY_CATEGORIES: Union[str, List[str]] = Field(default='["Learning"]')
    PERCENTAGE_CONTROLLED_CATEGORIES: Union[str, List[str]] = Field(default='["星芒学社", "图库"]')
    GUEST_PERCENTAGE: int = Field(
        default=20, ge=0, le=100,
        description="Share of a percentage-controlled category shown to anonymous callers",
    )

    @field_validator("CATEGORIES", "ADMIN_ONLY_CATEGORIES", "PERCENTAGE_CONTROLLED_CATEGORIES")
    @classmethod
    def parse_categories(cls, v):
        """Parse category lists from string or list."""
        return _parse_list(v)

    # Access keys
    KEY_DEFAULT_DURATION_DAYS: int = Field(default=30)
    KEY_MAX_DURATION_DAYS: int = Field(default=365)

    # Background expiry sweep
    SWEEP_ENABLED: bool = Field(default=True)
    SWEEP_INTERVAL_SECONDS: int = Field(default=3600)

    # Rate limiting (per client IP, fixed one-minute window)
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_PER_MINUTE: int = Field(default=300)
    LOGIN_RATE_LIMIT_PER_MINUTE: int = Field(default=10)


# Create global settings instance
@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
