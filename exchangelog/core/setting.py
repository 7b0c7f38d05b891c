"""
Configuration Settings

This module defines application configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Log destination and rotation policy are configured here and handed to
  LogSink once at startup, never read by the middleware itself
- Defaults write to ./logs/exchange.log with size-based rotation
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings", "settings"]

DEFAULT_LOG_FORMAT = "%(asctime)s\t%(levelname)s\t%(message)s"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Configuration
    SERVICE_NAME: str = Field(
        default="Exchange Logger Demo",
        description="Title of the demo application"
    )
    HOST: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    PORT: int = Field(default=8000, description="Bind port for uvicorn")

    # Log Sink Configuration
    LOG_FILE_PATH: str = Field(
        default="logs/exchange.log",
        description="File the exchange records are written to (parent directory is created)"
    )
    LOG_MAX_SIZE_MB: int = Field(
        default=100,
        ge=0,
        description="Rotate the log file once it reaches this size in MiB (0 = never rotate)"
    )
    LOG_MAX_BACKUPS: int = Field(
        default=5,
        ge=1,
        description="Number of rotated log files to keep"
    )
    LOG_MAX_AGE_DAYS: int = Field(
        default=30,
        ge=0,
        description="Delete rotated log files older than this many days (0 = keep regardless of age)"
    )
    LOG_COMPRESS: bool = Field(
        default=False,
        description="Gzip rotated log files"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Minimum level written to both destinations"
    )
    LOG_FORMAT: str = Field(
        default=DEFAULT_LOG_FORMAT,
        description="logging.Formatter format string shared by file and console"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


settings = Settings()
