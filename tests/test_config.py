"""Tests for settings loading."""

import pytest

from api_cache.config import (
    ErrorLoggingSettings,
    Settings,
    cache_ttls,
    compression_flags,
    rate_limit_policies,
)


def test_client_falls_back_to_default(settings: Settings) -> None:
    assert settings.client("unknown") == settings.clients["default"]
    assert settings.client("openai").api_key == "sk-test"


def test_derived_maps(settings: Settings) -> None:
    assert compression_flags(settings)["pixabay"] is True
    assert cache_ttls(settings)["openai"] == 3600
    assert rate_limit_policies(settings)["pixabay"].unlimited


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "http://localhost:54321")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")
    monkeypatch.setenv("ADMIN_TOKEN", "token")
    monkeypatch.setenv("CLIENTS__DEMO__RATE_LIMIT_MAX_ATTEMPTS", "10")
    monkeypatch.setenv("CLIENTS__DEMO__COMPRESSION_ENABLED", "true")

    loaded = Settings()

    assert loaded.clients["demo"].rate_limit_max_attempts == 10
    assert loaded.clients["demo"].compression_enabled is True
    assert loaded.redis_url == "redis://localhost:6379/0"


def test_error_logging_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "http://localhost:54321")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")
    monkeypatch.setenv("ADMIN_TOKEN", "token")
    monkeypatch.setenv("ERROR_LOGGING__LOG_EVENTS__CACHE_REJECTED", "false")
    monkeypatch.setenv("ERROR_LOGGING__LEVELS__HTTP_ERROR", "warning")

    loaded = Settings()

    assert loaded.error_logging.enabled
    assert not loaded.error_logging.should_log("cache_rejected")
    assert loaded.error_logging.should_log("http_error")
    assert loaded.error_logging.level("http_error") == "warning"


def test_error_logging_master_switch() -> None:
    logging_settings = ErrorLoggingSettings(enabled=False)

    assert not logging_settings.should_log("http_error")
    assert logging_settings.level("unknown_event") == "error"
