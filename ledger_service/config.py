"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from typing import Literal, Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class LedgerConfig(BaseSettings):
    """Ledger service configuration"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # API configuration
    host: str = "0.0.0.0"
    port: int = 3000

    # Database configuration
    database_url: str  # memory://, sqlite:///path or postgresql://...
    database_pool_size: int = 10

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
    )

    # Logging configuration
    log_level: Optional[str] = None  # Defaults to DEBUG in development, INFO otherwise

    # Ledger behaviour
    lock_timeout_seconds: Optional[float] = None  # None waits forever for row locks
    recent_entries_limit: int = 20

    @field_validator("database_url")
    @classmethod
    def _database_url_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("DATABASE_URL is required")
        return value.strip()

    @field_validator("lock_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("lock timeout must be positive")
        return value

    @field_validator("port", "database_pool_size", "recent_entries_limit")
    @classmethod
    def _positive_int(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "DEBUG" if self.is_development else "INFO"


# Global configuration instance, loaded on first use
config: Optional[LedgerConfig] = None


def load_config(**overrides) -> LedgerConfig:
    """
    Build configuration from the environment.

    Raises:
        ConfigurationError: If any setting is missing or invalid
    """
    try:
        return LedgerConfig(**overrides)
    except ValidationError as e:
        fields = {
            ".".join(str(part) for part in error["loc"]) or "config": error["msg"]
            for error in e.errors()
        }
        raise ConfigurationError(
            "Invalid environment configuration. Check your .env configuration.",
            details=fields,
        ) from e


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    global config
    if config is None:
        config = load_config()
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = load_config()
    return config
