"""Application settings and configuration.

This module defines all configuration options for the DataHub Review service.
Settings are loaded from environment variables with sensible defaults.
"""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueueClaimPolicy(str, Enum):
    """How validation queue claims from different admins interact."""

    # Any number of admins may queue the same submission.
    ADVISORY = "advisory"
    # The first admin to queue a submission holds it until it is dequeued or decided.
    EXCLUSIVE = "exclusive"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="DataHub Review", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./datahub_review.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Store access boundary: per-call timeout and bounded retries
    store_timeout_seconds: float = Field(default=10.0, alias="STORE_TIMEOUT_SECONDS")
    store_statement_timeout_ms: int = Field(default=30_000, alias="STORE_STATEMENT_TIMEOUT_MS")
    store_retry_attempts: int = Field(default=3, alias="STORE_RETRY_ATTEMPTS")
    store_retry_backoff_seconds: float = Field(
        default=0.5,
        alias="STORE_RETRY_BACKOFF_SECONDS",
    )

    # Admin identity. An empty allow-list accepts any well-formed email that
    # the upstream auth layer forwarded.
    admin_emails: list[str] = Field(default_factory=list, alias="ADMIN_EMAILS")

    # Validation queue and bulk operations
    queue_claim_policy: QueueClaimPolicy = Field(
        default=QueueClaimPolicy.ADVISORY,
        alias="QUEUE_CLAIM_POLICY",
    )
    bulk_max_concurrency: int = Field(default=8, alias="BULK_MAX_CONCURRENCY")
    bulk_max_items: int = Field(default=500, alias="BULK_MAX_ITEMS")
    listing_limit_default: int = Field(default=50, alias="LISTING_LIMIT_DEFAULT")
    listing_limit_max: int = Field(default=1000, alias="LISTING_LIMIT_MAX")

    # CORS configuration for dashboard access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def admin_allowlist(self) -> frozenset[str]:
        """Return the configured admin emails, normalised for comparison."""
        return frozenset(email.strip().lower() for email in self.admin_emails if email.strip())


settings = Settings()
