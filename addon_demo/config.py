"""Configuration using pydantic-settings."""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings.

    Add-on variables (``DATABASE_URL``, ``REDIS_URL``, ``NEW_RELIC_LICENSE_KEY``,
    ``PORT``) are injected by the platform under fixed names, so no prefix is used.
    """

    host: str = "0.0.0.0"  # nosec B104 - Required for container deployment
    port: int = 8000
    environment: str = "development"
    app_name: str = "addon-demo-app"

    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"
    log_file: str | None = None
    log_drain_url: str | None = None

    database_url: str | None = None
    redis_url: str | None = None
    connect_attempts: int = 10

    new_relic_license_key: str | None = None
    new_relic_app_name: str | None = None

    rate_limit: str = "30/minute"

    # Worker settings
    worker_interval_seconds: int = 60
    page_view_retention_days: int = 30
    stats_cache_ttl: int = 3600
    summary_cache_ttl: int = 86400
    summary_top_pages: int = 5

    # Failure simulation settings
    crash_delay_seconds: float = 1.0
    memory_leak_chunk_mb: int = 10
    memory_leak_interval_seconds: float = 1.0
    memory_leak_max_chunks: int = 50
    cpu_iterations: int = 50_000_000

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, value: str | None) -> str | None:
        """Rewrite the platform's ``postgres://`` scheme to the one SQLAlchemy knows."""
        if value and value.startswith("postgres://"):
            return "postgresql://" + value.removeprefix("postgres://")
        return value or None

    @field_validator("redis_url")
    @classmethod
    def empty_redis_url(cls, value: str | None) -> str | None:
        """Treat an empty REDIS_URL as unset."""
        return value or None

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        """Normalise log level names."""
        return value.upper()

    @property
    def is_production(self) -> bool:
        """Check if running in the production environment."""
        return self.environment == "production"

    @property
    def database_requires_ssl(self) -> bool:
        """Managed databases only accept TLS connections in production."""
        return self.is_production and bool(self.database_url)

    def addon_status(self) -> dict[str, bool]:
        """Report which add-ons are wired into this process."""
        return {
            "postgres": bool(self.database_url),
            "redis": bool(self.redis_url),
            # Log drains are attached by the platform, not the app
            "papertrail": True,
            "newrelic": bool(self.new_relic_license_key),
        }

    class Config:
        """Pydantic config."""

        env_file = ".env"
        extra = "ignore"


settings = Settings()


def get_settings() -> Settings:
    """Get settings instance (for dependency injection)."""
    return settings
