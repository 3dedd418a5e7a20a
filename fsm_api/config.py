"""
API Configuration Management

Provides centralized configuration handling with environment-aware settings
and validation for the intake API and its record store.

Design Considerations:
- Environment-specific configuration profiles
- Storage backend selection without code changes
- Default values with proper documentation
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, model_validator


class EnvironmentType(str, Enum):
    """Valid environment types for configuration context."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class StorageBackend(str, Enum):
    """Supported email record stores."""
    MEMORY = "memory"
    REDIS = "redis"


class APISettings(BaseSettings):
    """
    API configuration settings with environment-specific defaults and validation.

    Values are read from environment variables and an optional ``.env``
    file. The record store defaults to process memory; set
    ``STORAGE_BACKEND=redis`` with ``REDIS_URL`` for a hosted store.
    """
    # Environment Configuration
    ENVIRONMENT: EnvironmentType = Field(
        default=EnvironmentType.DEVELOPMENT,
        description="Runtime environment context"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    # API Settings
    API_TITLE: str = Field(
        default="FSM Email Intake API",
        description="API title for documentation"
    )
    API_DESCRIPTION: str = Field(
        default="Intake, triage and dashboard API for classified service-request emails",
        description="API description for documentation"
    )
    API_VERSION: str = Field(
        default="1.0.0",
        description="API version"
    )

    # CORS Settings
    CORS_ORIGINS: List[str] | str = Field(
        default="*",
        validate_default=True,
        description="Comma-separated list of allowed origins for CORS"
    )
    CORS_METHODS: List[str] | str = Field(
        default="GET,POST,PUT,PATCH,DELETE,OPTIONS",
        validate_default=True,
        description="Comma-separated list of allowed methods for CORS"
    )

    # Storage Settings
    STORAGE_BACKEND: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Email record store: memory or redis"
    )
    REDIS_URL: Optional[str] = Field(
        default=None,
        description="Redis connection URL for the redis storage backend"
    )
    REDIS_KEY: str = Field(
        default="fsm:emails",
        description="Redis key holding the email list"
    )
    MAX_STORED_EMAILS: int = Field(
        default=100,
        ge=1,
        description="Number of most recent emails retained"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, value) -> list:
        """Parse comma-separated CORS origins into list."""
        if isinstance(value, list):
            return value
        if value == "*":
            return ["*"]
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @field_validator("CORS_METHODS", mode="before")
    @classmethod
    def parse_cors_methods(cls, value) -> list:
        """Parse comma-separated CORS methods into list."""
        if isinstance(value, list):
            return value
        return [method.strip().upper() for method in value.split(",") if method.strip()]

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def validate_storage(self) -> "APISettings":
        """Require a Redis URL when the redis backend is selected."""
        if self.STORAGE_BACKEND == StorageBackend.REDIS and not self.REDIS_URL:
            raise ValueError("REDIS_URL must be set when STORAGE_BACKEND is 'redis'")
        return self

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> APISettings:
    """
    Retrieve validated API settings.

    Settings are loaded once per process; tests clear the cache with
    ``get_settings.cache_clear()`` after changing the environment.

    Returns:
        Validated API settings object

    Raises:
        ValidationError: If configuration fails validation
    """
    return APISettings()
