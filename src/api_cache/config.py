"""Application configuration."""

import os

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from api_cache.domain.rate_limits import RateLimitPolicy

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class ClientSettings(BaseModel):
    """Per-client API and cache settings."""

    base_url: str = "http://localhost:8000/v1"
    api_key: str | None = None
    version: str | None = None
    cache_ttl: int | None = None
    compression_enabled: bool = False
    rate_limit_max_attempts: int | None = 1000
    rate_limit_decay_seconds: int = Field(default=60, gt=0)
    default_endpoint: str | None = None


class ErrorLoggingSettings(BaseModel):
    """Which API errors are persisted to the error log table, and at what level.

    Event types without an entry in ``log_events`` are logged; levels default to
    ``error``.
    """

    enabled: bool = True
    log_events: dict[str, bool] = Field(
        default_factory=lambda: {"http_error": True, "cache_rejected": True}
    )
    levels: dict[str, str] = Field(
        default_factory=lambda: {"http_error": "error", "cache_rejected": "error"}
    )

    def should_log(self, error_type: str) -> bool:
        return self.enabled and self.log_events.get(error_type, True)

    def level(self, error_type: str) -> str:
        return self.levels.get(error_type, "error")


def _default_clients() -> dict[str, ClientSettings]:
    return {
        "default": ClientSettings(),
        "openai": ClientSettings(
            base_url="https://api.openai.com/v1",
            default_endpoint="chat/completions",
            rate_limit_max_attempts=60,
        ),
        "pixabay": ClientSettings(
            base_url="https://pixabay.com/api",
            default_endpoint="search",
            rate_limit_max_attempts=5000,
            rate_limit_decay_seconds=3600,
        ),
        "youtube": ClientSettings(
            base_url="https://www.googleapis.com/youtube/v3",
            rate_limit_max_attempts=10000,
            rate_limit_decay_seconds=86400,
        ),
    }


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    redis_url: str = "redis://localhost:6379/0"
    admin_token: str
    log_level: str = "INFO"
    clients: dict[str, ClientSettings] = Field(default_factory=_default_clients)
    error_logging: ErrorLoggingSettings = Field(default_factory=ErrorLoggingSettings)
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        env_nested_delimiter="__",
        extra="ignore",
    )

    def client(self, client_name: str) -> ClientSettings:
        """Return settings for a client, falling back to ``default``."""
        return self.clients.get(client_name) or self.clients.get(
            "default", ClientSettings()
        )


def compression_flags(settings: Settings) -> dict[str, bool]:
    """Map each configured client to its compression toggle."""
    return {
        name: client.compression_enabled for name, client in settings.clients.items()
    }


def rate_limit_policies(settings: Settings) -> dict[str, RateLimitPolicy]:
    """Build each configured client's rate-limit policy."""
    return {
        name: RateLimitPolicy(
            max_attempts=client.rate_limit_max_attempts,
            decay_seconds=client.rate_limit_decay_seconds,
        )
        for name, client in settings.clients.items()
    }


def cache_ttls(settings: Settings) -> dict[str, int | None]:
    """Map each configured client to its default cache TTL."""
    return {name: client.cache_ttl for name, client in settings.clients.items()}
