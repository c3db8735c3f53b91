"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, port, pagination limits)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, Literal
from urllib.parse import urlparse


DEFAULT_DB_NAME = "bulk-user-management"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URI: str = Field(
        default=f"mongodb://localhost:27017/{DEFAULT_DB_NAME}",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: Optional[str] = Field(
        default=None,
        description="MongoDB database name (defaults to the one in the URI)"
    )
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = Field(
        default=5000,
        description="How long startup waits for a reachable MongoDB server"
    )

    # Server
    HOST: str = Field(default="0.0.0.0", description="Listen address")
    PORT: int = Field(default=5000, description="Listen port")

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="/api/users",
        description="User API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Pagination
    DEFAULT_PAGE_LIMIT: int = Field(
        default=10,
        description="Page size used when the client sends none or an invalid one"
    )
    MAX_PAGE_LIMIT: int = Field(
        default=100,
        description="Largest page size a client may request"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @property
    def database_name(self) -> str:
        """Database to use: explicit setting, else the URI path, else the default."""
        if self.MONGODB_DB_NAME:
            return self.MONGODB_DB_NAME
        path = urlparse(self.MONGODB_URI).path.lstrip("/")
        return path or DEFAULT_DB_NAME

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URI:
        errors.append("MONGODB_URI is required")
    elif not settings.MONGODB_URI.startswith(("mongodb://", "mongodb+srv://")):
        errors.append("MONGODB_URI must start with mongodb:// or mongodb+srv://")

    if settings.DEFAULT_PAGE_LIMIT < 1:
        errors.append("DEFAULT_PAGE_LIMIT must be at least 1")
    if settings.MAX_PAGE_LIMIT < settings.DEFAULT_PAGE_LIMIT:
        errors.append("MAX_PAGE_LIMIT must not be smaller than DEFAULT_PAGE_LIMIT")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
