"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="linguapath", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_workers: int = Field(default=1, description="Number of workers")
    api_reload: bool = Field(default=True, description="Enable auto-reload")

    # Authentication (tokens are issued by the identity provider)
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="JWT signing key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=15, description="Access token expiration (minutes)"
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(default=10, description="Max Redis connections")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )
    redis_retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    redis_health_check_interval: int = Field(
        default=30, description="Health check interval"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="linguapath", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    # Access control defaults
    access_require_authentication: bool = Field(
        default=True, description="Deny anonymous users on protected content"
    )
    access_require_enrollment: bool = Field(
        default=True, description="Require an enrollment record for course content"
    )
    access_check_sequential_unlock: bool = Field(
        default=True, description="Enforce sequential lesson unlocking"
    )
    access_allow_preview_lessons: bool = Field(
        default=True, description="Let preview lessons bypass enrollment gating"
    )

    # Course directory
    directory_cache_ttl_seconds: float = Field(
        default=300.0, description="Course cache TTL (5 minutes default)"
    )
    directory_cache_max_entries: int = Field(
        default=1000, description="Max cached courses per directory instance"
    )

    # Progress sync (offline queue)
    progress_queue_backend: Literal["redis", "memory"] = Field(
        default="redis", description="Backend for the pending-progress queue"
    )
    progress_queue_key_prefix: str = Field(
        default="linguapath:offline_progress",
        description="Key prefix for pending-progress entries",
    )
    progress_sync_interval_seconds: float = Field(
        default=30.0, description="Period of the background resync timer"
    )
    progress_sync_max_attempts: int = Field(
        default=3, description="Attempts per queued entry within one sync"
    )
    progress_sync_retry_delay_seconds: float = Field(
        default=1.0, description="Delay between attempts of one queued entry"
    )

    # Video player
    video_poll_interval_seconds: float = Field(
        default=30.0, description="Progress cadence for polling providers"
    )
    video_sdk_timeout_seconds: float = Field(
        default=15.0, description="Timeout for one provider SDK load attempt"
    )
    video_sdk_max_attempts: int = Field(
        default=3, description="Provider SDK load attempts before failing"
    )
    youtube_oembed_url: str = Field(
        default="https://www.youtube.com/oembed",
        description="YouTube oEmbed endpoint",
    )
    vimeo_oembed_url: str = Field(
        default="https://vimeo.com/api/oembed.json",
        description="Vimeo oEmbed endpoint",
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
