"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
The upstream provider credential is held here and never leaves the process.
"""

import re

from pydantic import Field, SecretStr, field_validator, model_validator
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
        description="Async SQLAlchemy connection string for the usage ledger and role grants",
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

    # Platform backend (identity)
    platform_url: str = Field(
        description="Base URL of the platform backend that introspects bearer tokens",
    )
    platform_anon_key: SecretStr = Field(
        description="Public API key sent alongside token introspection requests",
    )
    platform_auth_timeout: float = Field(
        default=10.0,
        description="Token introspection request timeout in seconds",
        gt=0,
    )

    @field_validator("platform_url")
    @classmethod
    def validate_platform_url(cls, v: str) -> str:
        return v.rstrip("/")

    # Upstream scraping provider
    upstream_api_key: SecretStr | None = Field(
        default=None,
        description="Server-held API key for the scraping provider",
    )
    upstream_base_url: str = Field(
        default="https://api.firecrawl.dev/v1",
        description="Base URL of the scraping provider API",
    )
    upstream_timeout: float = Field(
        default=60.0,
        description="Upstream request timeout in seconds",
        gt=0,
    )

    @field_validator("upstream_base_url")
    @classmethod
    def validate_upstream_base_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            msg = "upstream_base_url must use HTTPS"
            raise ValueError(msg)
        return v.rstrip("/")

    # Rate limiting
    rate_limit_max_requests: int = Field(
        default=20,
        description="Maximum gateway calls per user inside the sliding window",
        gt=0,
    )
    rate_limit_window_seconds: int = Field(
        default=60,
        description="Length of the sliding rate-limit window in seconds",
        gt=0,
    )
    rate_limit_exempt_upstream_failures: bool = Field(
        default=False,
        description="Exclude upstream outages (transport errors, 5xx) from the rate-limit count",
    )

    # Retention and analytics
    usage_log_retention_days: int = Field(
        default=30,
        description="Age in days after which usage log rows are deleted",
        gt=0,
    )
    analytics_recent_limit: int = Field(
        default=100,
        description="Number of most recent usage log rows aggregated by the analytics view",
        gt=0,
        le=10000,
    )

    # Scheduled cleanup
    cleanup_scheduler_secret: SecretStr | None = Field(
        default=None,
        description="When set, credential-less cleanup calls must send a matching X-Scheduler-Secret header",
    )
    scheduler_identity: str = Field(
        default="scheduler",
        description="User identifier recorded in the ledger for scheduled cleanup runs",
        min_length=1,
    )

    @model_validator(mode="after")
    def validate_retention_exceeds_window(self) -> "Settings":
        if self.usage_log_retention_days * 86400 <= self.rate_limit_window_seconds:
            msg = "usage_log_retention_days must be longer than rate_limit_window_seconds"
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

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def secret_values(self) -> list[str]:
        """Return every configured secret so log output can be scrubbed of them."""
        secrets = [self.platform_anon_key, self.upstream_api_key, self.cleanup_scheduler_secret]
        return [s.get_secret_value() for s in secrets if s is not None and s.get_secret_value()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
