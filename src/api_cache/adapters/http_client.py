"""Generic cached API client over httpx."""

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

import httpx

from api_cache.config import ClientSettings
from api_cache.domain.requests import ApiRequest, ApiResult
from api_cache.errors import ApiCacheError, InvalidRequest
from api_cache.services.api_cache_manager import ApiCacheManager
from api_cache.services.cache_keys import validate_identifier
from api_cache.services.error_log import ErrorLogger

MAX_ATTRIBUTES_LENGTH = 255

_QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE"})
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
_REDACTED_HEADERS = frozenset({"authorization", "x-api-key"})

_logger = logging.getLogger(__name__)


@dataclass
class CachedApiClient:
    """Runs live calls through the response cache and the client's rate limit.

    Subclasses override ``auth_headers``, ``auth_params``, ``calculate_cost``,
    ``should_cache`` and ``extract_api_message`` for a specific upstream API.
    With an ``error_logger``, failed calls and rejected cache writes are also
    persisted to the error log.
    """

    client_name: str
    settings: ClientSettings
    cache_manager: ApiCacheManager
    http_client: httpx.Client
    use_cache: bool = True
    error_logger: ErrorLogger | None = None

    def __post_init__(self) -> None:
        validate_identifier(self.client_name)

    @classmethod
    def create(
        cls,
        client_name: str,
        settings: ClientSettings,
        cache_manager: ApiCacheManager,
        error_logger: ErrorLogger | None = None,
        timeout: float = 30.0,
    ) -> "CachedApiClient":
        """Create a client with a managed httpx session."""
        return cls(
            client_name=client_name,
            settings=settings,
            cache_manager=cache_manager,
            http_client=httpx.Client(timeout=timeout),
            error_logger=error_logger,
        )

    def build_url(self, endpoint: str, path_suffix: str | None = None) -> str:
        url = f"{self.settings.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        if path_suffix:
            url = f"{url}/{path_suffix.lstrip('/')}"
        return url

    def auth_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def auth_params(self) -> dict[str, Any]:
        return {}

    def calculate_cost(self, body: bytes) -> float | None:
        """Cost of a response in upstream billing units, if known."""
        return None

    def should_cache(self, result: ApiResult) -> bool:
        """Return whether a successful live result should be written back."""
        return bool(result.body)

    def extract_api_message(self, body: bytes) -> str | None:
        """Upstream error message carried in a JSON response body, if any."""
        try:
            payload = json.loads(body)
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        message = error if isinstance(error, str) else payload.get("message")
        return message if isinstance(message, str) else None

    def resolve_endpoint(self, endpoint: str | None) -> str:
        """Return ``endpoint``, falling back to the client's default endpoint."""
        resolved = endpoint or self.settings.default_endpoint
        if not resolved:
            raise InvalidRequest(
                f"No endpoint given and no default_endpoint for '{self.client_name}'"
            )
        return resolved

    def send_request(  # noqa: PLR0913
        self,
        endpoint: str | None = None,
        params: Mapping[str, Any] | None = None,
        method: str = "GET",
        attributes: str | None = None,
        credits: int | None = None,
    ) -> ApiResult:
        """Make the live call, bypassing cache and rate limit."""
        method = method.upper()
        if method not in _QUERY_METHODS | _BODY_METHODS:
            raise InvalidRequest(f"Unsupported HTTP method: {method}")

        endpoint = self.resolve_endpoint(endpoint)
        request_params = dict(params or {})
        payload = {**self.auth_params(), **request_params}
        url = self.build_url(endpoint)
        started = time.perf_counter()
        if method in _QUERY_METHODS:
            response = self.http_client.request(
                method, url, params=payload, headers=self.auth_headers()
            )
        else:
            response = self.http_client.request(
                method, url, json=payload, headers=self.auth_headers()
            )
        elapsed = time.perf_counter() - started

        request = response.request
        _logger.debug(
            "Live request completed: client=%s method=%s url=%s status=%s time=%.3f",
            self.client_name,
            method,
            request.url,
            response.status_code,
            elapsed,
        )
        return ApiResult(
            request=ApiRequest(
                base_url=self.settings.base_url,
                full_url=str(request.url),
                method=request.method,
                attributes=attributes,
                credits=credits,
                cost=self.calculate_cost(response.content),
                headers=_redact_headers(request.headers),
                body=request.content or None,
            ),
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.content,
            response_time=elapsed,
            params=request_params,
        )

    def send_cached_request(  # noqa: PLR0913
        self,
        endpoint: str | None = None,
        params: Mapping[str, Any] | None = None,
        method: str = "GET",
        attributes: str | None = None,
        amount: int = 1,
    ) -> ApiResult:
        """Serve from cache when possible, otherwise make a metered live call.

        Raises ``RateLimitExceeded`` when no cached response exists and the
        client's quota is used up. Write-back failures are reported on the
        returned result as ``cache_write_error``.
        """
        manager = self.cache_manager
        endpoint = self.resolve_endpoint(endpoint)
        request_params = dict(params or {})
        version = self.settings.version
        key = manager.generate_cache_key(
            self.client_name, endpoint, request_params, method, version
        )

        if self.use_cache:
            cached = manager.get_cached_response(self.client_name, key)
            if cached is not None:
                _logger.debug(
                    "Serving cached response: client=%s key=%s", self.client_name, key
                )
                return replace(cached, params=request_params)

        manager.ensure_request_allowed(self.client_name)

        if attributes is not None:
            attributes = attributes[:MAX_ATTRIBUTES_LENGTH]
        try:
            result = self.send_request(
                endpoint, request_params, method, attributes, credits=amount
            )
        except httpx.HTTPError as exc:
            _logger.exception(
                "Live request failed: client=%s endpoint=%s", self.client_name, endpoint
            )
            self._record_http_error(
                0,
                f"Connection error: {exc}",
                {
                    "url": self.build_url(endpoint),
                    "method": method.upper(),
                    "cache_key": key,
                    "error_type": "connection_error",
                },
            )
            raise
        manager.increment_attempts(self.client_name, amount)
        result = replace(result, cache_key=key)

        if not result.successful:
            _logger.warning(
                "Not caching unsuccessful response: client=%s key=%s status=%s",
                self.client_name,
                key,
                result.status_code,
            )
            self._record_http_error(
                result.status_code,
                "API request failed",
                {
                    "url": result.request.full_url,
                    "method": result.request.method,
                    "cache_key": key,
                },
                result.body,
            )
            return result
        if not self.use_cache:
            return result
        if not self.should_cache(result):
            self._record_cache_rejected(
                "Response failed should_cache check", result, endpoint, key
            )
            return result

        try:
            manager.store_response(
                self.client_name,
                key,
                result,
                endpoint,
                version=version,
                ttl=self.settings.cache_ttl,
                params=request_params,
            )
        except ApiCacheError as exc:
            _logger.exception(
                "Cache write-back failed: client=%s key=%s", self.client_name, key
            )
            self._record_cache_rejected(
                f"Cache write-back failed: {exc}", result, endpoint, key
            )
            return replace(result, cache_write_error=str(exc))
        return result

    def _record_http_error(
        self,
        status_code: int,
        message: str,
        context: dict[str, Any],
        body: bytes = b"",
    ) -> None:
        if self.error_logger is None:
            return
        self.error_logger.log_http_error(
            self.client_name,
            status_code,
            message,
            context,
            _response_text(body),
            self.extract_api_message(body),
        )

    def _record_cache_rejected(
        self, message: str, result: ApiResult, endpoint: str, key: str
    ) -> None:
        if self.error_logger is None:
            return
        self.error_logger.log_cache_rejected(
            self.client_name,
            message,
            {"url": result.request.full_url, "endpoint": endpoint, "cache_key": key},
            _response_text(result.body),
            self.extract_api_message(result.body),
        )

    def clear_rate_limit(self) -> None:
        self.cache_manager.clear_rate_limit(self.client_name)

    def clear_table(self) -> int:
        return self.cache_manager.clear_table(self.client_name)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.http_client.close()


def _response_text(body: bytes) -> str | None:
    return body.decode("utf-8", errors="replace") if body else None


def _redact_headers(headers: httpx.Headers) -> dict[str, object]:
    return {
        name: "[redacted]" if name.lower() in _REDACTED_HEADERS else value
        for name, value in headers.items()
    }
