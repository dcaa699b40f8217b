"""Persisted log of upstream API errors."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from api_cache.config import ErrorLoggingSettings

ERROR_LOG_TABLE = "api_cache_errors"
RESPONSE_PREVIEW_LENGTH = 2000

_logger = logging.getLogger(__name__)


class ErrorLogStore(Protocol):
    """Append-only storage for API error rows."""

    def insert(self, row: dict[str, object]) -> None:
        """Persist one error row."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ErrorLogger:
    """Records failed calls and rejected cache writes for later inspection.

    Each row carries the client, the event type (``http_error`` or
    ``cache_rejected``), the configured level, the message, an upstream error
    message when one can be extracted, a response preview and context data.
    """

    store: ErrorLogStore
    settings: ErrorLoggingSettings = field(default_factory=ErrorLoggingSettings)
    clock: Callable[[], datetime] = _utcnow

    def log_api_error(  # noqa: PLR0913
        self,
        client_name: str,
        error_type: str,
        message: str | None,
        context: Mapping[str, Any] | None = None,
        response: str | None = None,
        api_message: str | None = None,
    ) -> bool:
        """Persist an error row and return whether one was written.

        Disabled event types write nothing. Store failures are logged and
        swallowed; recording an error never changes the outcome of the call
        being recorded.
        """
        if not self.settings.should_log(error_type):
            return False

        level = self.settings.level(error_type)
        row: dict[str, object] = {
            "api_client": client_name,
            "error_type": error_type,
            "log_level": level,
            "error_message": message,
            "api_message": api_message,
            "response_preview": (
                response[:RESPONSE_PREVIEW_LENGTH] if response is not None else None
            ),
            "context_data": dict(context) if context else None,
            "created_at": self.clock(),
        }
        _logger.debug(
            "Logging API error: client=%s error_type=%s log_level=%s message=%s",
            client_name,
            error_type,
            level,
            message,
        )
        try:
            self.store.insert(row)
        except Exception:
            _logger.exception(
                "Failed to log API error: client=%s error_type=%s",
                client_name,
                error_type,
            )
            return False
        return True

    def log_http_error(  # noqa: PLR0913
        self,
        client_name: str,
        status_code: int,
        message: str | None = None,
        context: Mapping[str, Any] | None = None,
        response: str | None = None,
        api_message: str | None = None,
    ) -> bool:
        """Record a non-2xx response, or a transport failure as status 0."""
        return self.log_api_error(
            client_name,
            "http_error",
            message or "HTTP error",
            {"status_code": status_code, **(context or {})},
            response,
            api_message,
        )

    def log_cache_rejected(
        self,
        client_name: str,
        message: str | None = None,
        context: Mapping[str, Any] | None = None,
        response: str | None = None,
        api_message: str | None = None,
    ) -> bool:
        return self.log_api_error(
            client_name,
            "cache_rejected",
            message or "Cache rejected",
            context,
            response,
            api_message,
        )
