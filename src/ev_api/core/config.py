"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/ev_api",
        description="PostgreSQL+PostGIS async connection string",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # Data loader
    loader_batch_size: int = Field(
        default=1000,
        description="Default number of CSV rows committed per upsert transaction",
        gt=0,
    )
    loader_pool_core_size: int = Field(
        default=5,
        description="Load jobs started immediately before new jobs are queued",
        gt=0,
    )
    loader_pool_max_size: int = Field(
        default=10,
        description="Maximum load jobs running concurrently once the queue is full",
        gt=0,
    )
    loader_queue_capacity: int = Field(
        default=25,
        description="Load jobs allowed to wait for a free worker before submissions are rejected",
        ge=0,
    )
    loader_max_upload_mb: int = Field(
        default=500,
        description="Maximum size of an uploaded CSV file in megabytes",
        gt=0,
    )

    @model_validator(mode="after")
    def validate_pool_sizes(self) -> "Settings":
        if self.loader_pool_max_size < self.loader_pool_core_size:
            msg = "loader_pool_max_size must be greater than or equal to loader_pool_core_size"
            raise ValueError(msg)
        return self

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )
    cors_origin_regex: str = Field(
        default="",
        description="Regex pattern for allowed CORS origins",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    # HTTP client
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of a running EV API server, used by the client CLI commands",
    )
    api_timeout: float = Field(
        default=30.0,
        description="HTTP client request timeout in seconds",
        gt=0,
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            msg = "api_base_url must use http or https"
            raise ValueError(msg)
        return v.rstrip("/")

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
