"""Application settings and configuration.

This module defines all configuration options for the Publora Engine service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Publora Engine", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security; also signs pre-signed upload tokens
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    api_key_prefix: str = Field(default="sk_", alias="API_KEY_PREFIX")

    # Database configuration
    database_url: str = Field(default="sqlite:///./publora.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Scheduler loop
    scheduler_enabled: bool = Field(default=True, alias="SCHEDULER_ENABLED")
    scheduler_poll_interval_seconds: float = Field(
        default=5.0,
        alias="SCHEDULER_POLL_INTERVAL_SECONDS",
    )
    scheduler_batch_size: int = Field(default=25, alias="SCHEDULER_BATCH_SIZE")
    scheduler_max_concurrency: int = Field(default=8, alias="SCHEDULER_MAX_CONCURRENCY")
    scheduler_processing_timeout_seconds: int = Field(
        default=30 * 60,
        alias="SCHEDULER_PROCESSING_TIMEOUT_SECONDS",
    )

    # Publishing retries (transient platform failures only)
    publish_max_attempts: int = Field(default=4, alias="PUBLISH_MAX_ATTEMPTS")
    publish_backoff_base_seconds: float = Field(
        default=2.0,
        alias="PUBLISH_BACKOFF_BASE_SECONDS",
    )
    publish_backoff_max_seconds: float = Field(
        default=60.0,
        alias="PUBLISH_BACKOFF_MAX_SECONDS",
    )
    platform_http_timeout_seconds: float = Field(
        default=30.0,
        alias="PLATFORM_HTTP_TIMEOUT_SECONDS",
    )
    platform_media_poll_attempts: int = Field(
        default=20,
        alias="PLATFORM_MEDIA_POLL_ATTEMPTS",
    )
    platform_media_poll_interval_seconds: float = Field(
        default=5.0,
        alias="PLATFORM_MEDIA_POLL_INTERVAL_SECONDS",
    )

    # Media upload broker
    storage_upload_base_url: str = Field(
        default="https://uploads.publora.com",
        alias="STORAGE_UPLOAD_BASE_URL",
    )
    storage_public_base_url: str = Field(
        default="https://media.publora.com",
        alias="STORAGE_PUBLIC_BASE_URL",
    )
    upload_url_ttl_seconds: int = Field(default=15 * 60, alias="UPLOAD_URL_TTL_SECONDS")
    upload_token_algorithm: str = Field(default="HS256", alias="UPLOAD_TOKEN_ALGORITHM")

    # Platform API endpoints
    twitter_api_base_url: str = Field(default="https://api.x.com", alias="TWITTER_API_BASE_URL")
    linkedin_api_base_url: str = Field(
        default="https://api.linkedin.com",
        alias="LINKEDIN_API_BASE_URL",
    )
    linkedin_api_version: str = Field(default="202504", alias="LINKEDIN_API_VERSION")
    meta_graph_base_url: str = Field(
        default="https://graph.facebook.com/v22.0",
        alias="META_GRAPH_BASE_URL",
    )
    threads_api_base_url: str = Field(
        default="https://graph.threads.net/v1.0",
        alias="THREADS_API_BASE_URL",
    )
    tiktok_api_base_url: str = Field(
        default="https://open.tiktokapis.com",
        alias="TIKTOK_API_BASE_URL",
    )
    youtube_upload_base_url: str = Field(
        default="https://www.googleapis.com/upload/youtube/v3",
        alias="YOUTUBE_UPLOAD_BASE_URL",
    )
    bluesky_pds_base_url: str = Field(default="https://bsky.social", alias="BLUESKY_PDS_BASE_URL")
    telegram_api_base_url: str = Field(
        default="https://api.telegram.org",
        alias="TELEGRAM_API_BASE_URL",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
