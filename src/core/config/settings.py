# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables (and an optional ``.env``
file) with sensible defaults. The Settings class aggregates all subsettings
and a cached instance is provided via get_settings().

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> settings.scheduler.activation_interval_seconds
    60
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store configuration.

    The store holds assessments, the question bank, attempts and the
    canonical practice results. ``dsn`` overrides the URL built from the
    individual components, which is how local runs point at SQLite.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        dsn: Full SQLAlchemy URL, used as-is when set.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log every SQL statement.
        auto_create_schema: Create missing tables at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "assessments"
    password: SecretStr = SecretStr("assessments_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "assessments"
    dsn: str | None = None
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False
    auto_create_schema: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.dsn:
            return self.dsn
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"

    @property
    def is_sqlite(self) -> bool:
        """Check whether the configured store is SQLite."""
        return self.url.startswith("sqlite")


class SchedulerSettings(BaseSettings):
    """Background scheduling configuration.

    Attributes:
        enabled: Start the periodic activation sweep with the API.
        activation_interval_seconds: Period of the activation sweep.
        reconcile_on_startup: Run a reconciliation sweep during startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        extra="ignore",
    )

    enabled: bool = True
    activation_interval_seconds: int = Field(default=60, ge=1)
    reconcile_on_startup: bool = True


class PracticeSettings(BaseSettings):
    """Practice test generation configuration.

    Attributes:
        default_duration_minutes: Duration given to generated practice tests.
        max_question_count: Upper bound for a single practice request.
    """

    model_config = SettingsConfigDict(
        env_prefix="PRACTICE_",
        extra="ignore",
    )

    default_duration_minutes: int = Field(default=30, ge=1)
    max_question_count: int = Field(default=100, ge=1)


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Interface to bind.
        port: Port to bind.
        title: OpenAPI title.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 8000
    title: str = "Assessment Lifecycle API"


class Settings(BaseSettings):
    """Main application settings.

    Attributes:
        environment: Deployment environment.
        debug: Enable debug mode.
        log_level: Logging level.
        database: Relational store settings.
        scheduler: Background scheduling settings.
        practice: Practice test generation settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    practice: PracticeSettings = Field(default_factory=PracticeSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with development-only options.
        """
        if self.environment == "production":
            if self.database.auto_create_schema:
                raise ValueError(
                    "Schema auto-creation is not allowed in production. "
                    "Unset DB_AUTO_CREATE_SCHEMA."
                )
            if self.database.is_sqlite:
                raise ValueError("SQLite is not supported in production.")
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
