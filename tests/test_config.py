"""Test configuration and add-on detection."""

import os
from unittest.mock import patch

import pytest

from addon_demo.config import Settings, get_settings, settings


class TestSettings:
    """Test Settings configuration."""

    def test_default_settings(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = Settings(_env_file=None)

        assert config.host == "0.0.0.0"
        assert config.port == 8000
        assert config.environment == "development"
        assert config.app_name == "addon-demo-app"
        assert config.log_level == "INFO"
        assert config.log_format == "text"
        assert config.database_url is None
        assert config.redis_url is None
        assert config.rate_limit == "30/minute"
        assert config.worker_interval_seconds == 60
        assert config.page_view_retention_days == 30
        assert config.memory_leak_max_chunks == 50
        assert config.cpu_iterations == 50_000_000

    def test_platform_variables(self) -> None:
        """Add-on variables are read without a prefix."""
        with patch.dict(
            os.environ,
            {
                "PORT": "5000",
                "DATABASE_URL": "postgresql://user:pw@db:5432/app",
                "REDIS_URL": "redis://cache:6379",
                "NEW_RELIC_LICENSE_KEY": "nr-key",
                "LOG_LEVEL": "debug",
                "LOG_FORMAT": "json",
                "WORKER_INTERVAL_SECONDS": "5",
            },
            clear=True,
        ):
            config = Settings(_env_file=None)

        assert config.port == 5000
        assert config.database_url == "postgresql://user:pw@db:5432/app"
        assert config.redis_url == "redis://cache:6379"
        assert config.new_relic_license_key == "nr-key"
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.worker_interval_seconds == 5

    def test_postgres_scheme_is_rewritten(self) -> None:
        config = Settings(database_url="postgres://user:pw@db:5432/app")

        assert config.database_url == "postgresql://user:pw@db:5432/app"

    @pytest.mark.parametrize("field", ["database_url", "redis_url"])
    def test_empty_url_means_unset(self, field: str) -> None:
        config = Settings(**{field: ""})

        assert getattr(config, field) is None

    def test_invalid_log_format(self) -> None:
        with pytest.raises(ValueError):
            Settings(log_format="xml")

    def test_database_ssl_only_in_production(self) -> None:
        url = "postgresql://user:pw@db:5432/app"

        assert Settings(database_url=url, environment="production").database_requires_ssl
        assert not Settings(database_url=url, environment="development").database_requires_ssl
        assert not Settings(database_url=None, environment="production").database_requires_ssl

    def test_addon_status(self) -> None:
        config = Settings(
            database_url="postgresql://db/app",
            redis_url=None,
            new_relic_license_key="nr-key",
        )

        assert config.addon_status() == {
            "postgres": True,
            "redis": False,
            "papertrail": True,
            "newrelic": True,
        }

    def test_get_settings_returns_global_instance(self) -> None:
        assert get_settings() is settings
