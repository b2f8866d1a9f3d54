"""
Centralized configuration management for the rental core.

This module provides a unified configuration system with support for:
- Environment variables (optionally loaded from a .env file)
- Feature flags
- Validation using Pydantic

The configuration object is built once by the host and handed to the
ServiceContext; nothing in the package reads it from module state.
"""

import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .constants import SIGNING_TOKEN_TTL_HOURS, EnvironmentVariable, LogLevel, QueueName


def _env(name: EnvironmentVariable, default: str = "") -> str:
    return os.getenv(name.value, default)


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    connection_string: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.DATABASE_URL, "sqlite:///./rental.db"),
        description="SQLAlchemy connection URL",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")


class QueueConfig(BaseModel):
    """Queue configuration for Azure Storage Queues."""

    connection_string: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.AZURE_STORAGE_CONNECTION),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default=QueueName.LOGS.value, description="Log shipping queue")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.LOG_LEVEL, LogLevel.INFO.value),
        description="Logging level",
    )
    queue_batch_size: int = Field(default=10, description="Records buffered before shipping")

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FeatureFlags(BaseModel):
    """Feature flags for controlling runtime behavior."""

    enable_logs_queue: bool = Field(
        default_factory=lambda: _env(EnvironmentVariable.ENABLE_LOGS_QUEUE, "false").lower()
        == "true",
        description="Ship structured logs to the Azure logs queue",
    )
    strict_inflation_coverage: bool = Field(
        default=False,
        description="Fail cumulative-inflation queries that have missing months",
    )


class LineConfig(BaseModel):
    """LINE Messaging API credentials and the owner allow-list."""

    channel_access_token: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.LINE_CHANNEL_ACCESS_TOKEN)
    )
    channel_secret: str = Field(default_factory=lambda: _env(EnvironmentVariable.LINE_CHANNEL_SECRET))
    owner_line_ids: List[str] = Field(
        default_factory=lambda: _split_csv(_env(EnvironmentVariable.OWNER_LINE_IDS)),
        description="LINE user ids allowed to use owner commands",
    )
    api_base: str = Field(default="https://api.line.me/v2/bot")
    request_timeout: int = Field(default=10, description="HTTP timeout in seconds")

    @field_validator("owner_line_ids", mode="before")
    def split_owner_ids(cls, v: Any) -> List[str]:
        """Accept a comma separated string as well as a list."""
        if isinstance(v, str):
            return _split_csv(v)
        return v


class AIConfig(BaseModel):
    """OpenAI chat completion settings."""

    openai_api_key: Optional[str] = Field(
        default_factory=lambda: _env(EnvironmentVariable.OPENAI_API_KEY) or None
    )
    api_url: str = Field(default="https://api.openai.com/v1/chat/completions")
    model: str = Field(default="gpt-4o-mini")
    max_tokens: int = Field(default=500)
    temperature: float = Field(default=0.3)
    request_timeout: int = Field(default=20, description="HTTP timeout in seconds")


class SecurityConfig(BaseModel):
    """Security-related configuration."""

    signing_secret: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.SIGNING_SECRET, "dev-signing-secret")
    )
    signing_token_ttl_hours: int = Field(default=SIGNING_TOKEN_TTL_HOURS)
    cron_secret: Optional[str] = Field(
        default_factory=lambda: _env(EnvironmentVariable.CRON_SECRET) or None
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.APP_ENV, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true",
        description="Debug mode",
    )
    app_url: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.APP_URL, "http://localhost:7071"),
        description="Public base URL used in signing links",
    )

    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    line: LineConfig = Field(default_factory=LineConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    # Custom configuration
    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "AppConfig":
        """Create configuration from environment variables, loading a .env file first."""
        load_dotenv(env_file)
        return cls()

    def get_custom(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self.custom.get(key, default)
