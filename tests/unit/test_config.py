"""
Unit tests for configuration and logging setup.
"""

import json
import logging

import pytest

from app.core.config import (
    ConfigValidator,
    EnvironmentEnum,
    LogFormatEnum,
    Settings,
    get_config_summary,
    settings,
)
from app.core.logging import JsonFormatter, build_logging_config


class TestSettings:
    def test_test_environment_is_active(self):
        assert settings.is_testing
        assert not settings.is_production

    def test_environment_aliases(self):
        assert Settings(environment="prod").environment == EnvironmentEnum.production
        assert Settings(environment="dev").environment == EnvironmentEnum.development

    def test_allowed_origins_are_split(self):
        configured = Settings(allowed_origins="http://a.test, http://b.test")

        assert configured.allowed_origins_list == ["http://a.test", "http://b.test"]

    def test_urls_lose_trailing_slash(self):
        configured = Settings(app_url="https://lib.example.com/", storage_public_base_url="https://cdn.test/files/")

        assert configured.app_url == "https://lib.example.com"
        assert configured.storage_public_base_url == "https://cdn.test/files"

    def test_file_size_cap(self):
        with pytest.raises(ValueError):
            Settings(max_file_size=200 * 1024 * 1024)

    def test_postgres_test_database_is_derived(self):
        configured = Settings(
            database_url="postgresql+asyncpg://u:p@db:5432/library?ssl=require",
            test_database_url=None,
        )

        assert configured.test_database_url == "postgresql+asyncpg://u:p@db:5432/library_test?ssl=require"

    def test_explicit_test_database_is_kept(self):
        configured = Settings(
            database_url="postgresql+asyncpg://u:p@db:5432/library",
            test_database_url="sqlite+aiosqlite:///./t.db",
        )

        assert configured.test_database_url == "sqlite+aiosqlite:///./t.db"

    def test_config_summary_has_no_secrets(self):
        summary = get_config_summary()

        assert "secret_key" not in summary
        assert summary["max_files_per_item"] == settings.max_files_per_item


class TestConfigValidator:
    def test_passes_with_database_url(self, monkeypatch):
        monkeypatch.setattr(settings, "database_url", "sqlite+aiosqlite:///./x.db")

        ConfigValidator.validate_required_settings()

    def test_missing_database_url_is_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "database_url", None)
        monkeypatch.setattr(settings, "test_database_url", None)

        with pytest.raises(ValueError, match="DATABASE_URL is required"):
            ConfigValidator.validate_required_settings()

    def test_short_secret_rejected_in_production(self, monkeypatch):
        monkeypatch.setattr(settings, "database_url", "postgresql+asyncpg://u:p@db/library")
        monkeypatch.setattr(settings, "environment", EnvironmentEnum.production)
        monkeypatch.setattr(settings, "secret_key", "short")

        with pytest.raises(ValueError, match="SECRET_KEY"):
            ConfigValidator.validate_required_settings()


class TestLogging:
    def test_plain_format_by_default(self):
        config = build_logging_config("INFO", LogFormatEnum.simple.value)

        assert config["handlers"]["default"]["formatter"] == "default"
        assert config["root"]["level"] == "INFO"

    def test_json_format(self):
        config = build_logging_config("DEBUG", LogFormatEnum.json.value)

        assert config["handlers"]["default"]["formatter"] == "json"
        assert config["loggers"]["app"]["level"] == "DEBUG"

    def test_json_formatter_emits_one_object(self):
        record = logging.LogRecord(
            name="app.test", level=logging.INFO, pathname=__file__, lineno=1,
            msg="Item created: %s", args=("abc",), exc_info=None,
        )

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "Item created: abc"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "app.test"
