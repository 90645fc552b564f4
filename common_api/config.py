"""
Centralized configuration management powered by pydantic-settings.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Supported runtime environments."""

    LOCAL = "local"
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class AppSettings(BaseModel):
    """Application metadata and runtime toggles."""

    name: str = Field(default="common-api", description="Human-readable service name.")
    version: str = Field(default="0.1.0", description="Deployed application version.")
    environment: Environment = Field(
        default=Environment.LOCAL, description="Deployment environment identifier."
    )
    debug: bool = Field(default=False, description="Enable debug features and verbose logs.")


class DatabaseSettings(BaseModel):
    """Database connection and session behavior."""

    url: str = Field(
        default="sqlite+aiosqlite:///./common_api.db",
        description="SQLAlchemy-compatible async database URL.",
    )
    pool_size: PositiveInt = Field(default=10, description="Database connection pool size.")
    echo: bool = Field(default=False, description="Enable SQL echo for debugging.")
    expire_on_commit: bool = Field(
        default=False, description="Expire loaded instances after every commit."
    )
    autoflush: bool = Field(
        default=False,
        description="Flush staged changes before queries. Off so nothing is written before a save.",
    )


class LoggingSettings(BaseModel):
    """Logging configuration shared across the project."""

    level: str = Field(default="INFO", description="Root logging level.")
    format: str = Field(
        default="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        description="Standard logging format string.",
    )
    directory: Path = Field(default=Path("logs"), description="Directory for log files.")
    file_name: str = Field(default="common_api.log", description="Primary log file name.")
    max_bytes: PositiveInt = Field(
        default=5 * 1024 * 1024, description="Maximum file size before rotating."
    )
    backup_count: PositiveInt = Field(default=5, description="Number of rotated log files to keep.")


class DiscoverySettings(BaseModel):
    """Where entity types are looked up at startup."""

    namespace: str | None = Field(
        default=None,
        description="Module name holding the entity classes, matched case-insensitively.",
    )
    packages: list[str] = Field(
        default_factory=list,
        description="Packages whose modules are imported before matching.",
    )

    @field_validator("namespace", mode="before")
    @classmethod
    def blank_namespace_to_none(cls, v: object) -> object:
        """Treat an empty or whitespace-only namespace as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("packages", mode="before")
    @classmethod
    def split_packages(cls, v: object) -> object:
        """Accept a comma-separated string as well as a JSON array."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v


class Settings(BaseSettings):
    """Top-level application settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppSettings = AppSettings()
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    discovery: DiscoverySettings = DiscoverySettings()


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance loaded from the current environment."""

    return Settings()


__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "DiscoverySettings",
    "Environment",
    "LoggingSettings",
    "Settings",
    "get_settings",
]
