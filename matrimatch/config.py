"""Configuration management for the MatriMatch matching core."""

from typing import Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    DATABASE_URL: str = "sqlite:///matrimatch.db"

    # Redis Configuration
    REDIS_URL: str | None = None

    # Sentry Configuration
    SENTRY_DSN: str | None = None

    # Application Configuration
    APP_NAME: str = "MatriMatch"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    DEBUG: bool | None = Field(default=None, validate_default=True)

    # Matching Configuration
    MAX_MATCHES_PER_USER: int = 50
    MATCHING_SCORE: int = 70
    MATCH_LOCK_TIMEOUT: int = 300
    MATCH_WORKERS: int = 2

    # Cache TTLs (seconds)
    MATCH_SCORE_CACHE_TTL: int = 3600
    USER_PROFILE_CACHE_TTL: int = 86400
    PROFILE_VIEW_CACHE_TTL: int = 86400

    @field_validator("DEBUG", mode="before")
    @classmethod
    def set_debug(cls, v: Any, info: ValidationInfo) -> bool:
        """Enable debug mode if ENVIRONMENT is development."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str) and v.strip():
            return v.strip().lower() in {"1", "true", "yes", "on"}
        return bool(info.data.get("ENVIRONMENT", "").lower() == "development")

    @field_validator("MATCHING_SCORE")
    @classmethod
    def validate_matching_score(cls, v: int) -> int:
        """Keep the persistence threshold inside the score range."""
        return max(1, min(100, v))

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore")


# Create a global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Return the settings instance."""
    return settings
