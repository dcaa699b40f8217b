"""Cache orchestration consumed by API client wrappers."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from api_cache.domain.cache import CacheStats
from api_cache.domain.requests import ApiRequest, ApiResult
from api_cache.errors import ApiCacheError, CacheWriteFailure, RateLimitExceeded
from api_cache.services.cache_keys import generate_cache_key
from api_cache.services.cache_repository import CacheRepository
from api_cache.services.params import ParamValue, normalize_params, summarize_params
from api_cache.services.rate_limiter import RateLimiter

_logger = logging.getLogger(__name__)


@dataclass
class ApiCacheManager:
    """Couples the response cache with per-client rate limiting.

    Callers generate a key, try ``get_cached_response``, check
    ``allow_request`` before a live call, then ``increment_attempts`` and
    ``store_response`` once the call has returned.
    """

    repository: CacheRepository
    rate_limiter: RateLimiter
    default_ttls: dict[str, int | None] = field(default_factory=dict)

    def normalize_params(
        self, params: Mapping[str, Any] | list[Any], depth: int = 0
    ) -> dict[str, ParamValue] | list[ParamValue]:
        """Canonical form of request parameters."""
        return normalize_params(params, depth)

    def generate_cache_key(
        self,
        client_name: str,
        endpoint: str,
        params: Mapping[str, Any] | list[Any],
        method: str = "GET",
        version: str | None = None,
    ) -> str:
        """Deterministic fingerprint of a request."""
        return generate_cache_key(client_name, endpoint, params, method, version)

    def table_name(self, client_name: str) -> str:
        return self.repository.table_name(client_name)

    def allow_request(self, client_name: str) -> bool:
        """Return whether a live call is within the client's quota."""
        return self.rate_limiter.allow(client_name)

    def ensure_request_allowed(self, client_name: str) -> None:
        """Raise ``RateLimitExceeded`` when the client's quota is used up."""
        if not self.allow_request(client_name):
            raise RateLimitExceeded(client_name, self.available_in(client_name))

    def remaining_attempts(self, client_name: str) -> int:
        return self.rate_limiter.remaining(client_name)

    def available_in(self, client_name: str) -> int:
        return self.rate_limiter.available_in(client_name)

    def increment_attempts(self, client_name: str, amount: int = 1) -> None:
        """Record live calls against the client's quota."""
        self.rate_limiter.increment(client_name, amount)

    def clear_rate_limit(self, client_name: str) -> None:
        """Administrative reset of a client's rate-limit window."""
        self.rate_limiter.clear(client_name)

    def clear_table(self, client_name: str) -> int:
        """Delete every cached response for a client."""
        return self.repository.clear_table(client_name)

    def delete_expired(self, client_name: str | None = None) -> int:
        """Sweep expired responses for one or all configured clients."""
        return self.repository.delete_expired(client_name)

    def stats(self, client_name: str) -> CacheStats:
        return self.repository.stats(client_name)

    def get_cached_response(self, client_name: str, key: str) -> ApiResult | None:
        """Return the cached response envelope for ``key``, if live."""
        entry = self.repository.get(client_name, key)
        if entry is None:
            return None
        return ApiResult(
            request=ApiRequest(
                base_url=entry.base_url,
                full_url=entry.full_url,
                method=entry.method,
                attributes=entry.attributes,
                credits=entry.credits,
                cost=entry.cost,
                headers=entry.request_headers,
                body=entry.request_body,
            ),
            status_code=entry.response_status_code,
            headers=entry.response_headers or {},
            body=entry.response_body,
            response_time=entry.response_time,
            is_cached=True,
            cache_key=key,
        )

    def store_response(  # noqa: PLR0913
        self,
        client_name: str,
        key: str,
        result: ApiResult,
        endpoint: str,
        version: str | None = None,
        ttl: int | None = None,
        params: Mapping[str, Any] | list[Any] | None = None,
    ) -> None:
        """Shape a live result into cache metadata and persist it.

        ``ttl`` of ``None`` uses the client's configured TTL, or the
        ``default`` client's TTL for unconfigured clients. Backend errors
        are raised as ``CacheWriteFailure``; cache-level errors propagate as is.
        """
        if ttl is None:
            ttl = self.default_ttls.get(client_name, self.default_ttls.get("default"))
        metadata: dict[str, object] = {
            "endpoint": endpoint,
            "version": version,
            "base_url": result.request.base_url,
            "full_url": result.request.full_url,
            "method": result.request.method,
            "attributes": result.request.attributes,
            "credits": result.request.credits,
            "cost": result.request.cost,
            "request_params_summary": (
                summarize_params(params) if params is not None else None
            ),
            "request_headers": result.request.headers,
            "request_body": result.request.body,
            "response_headers": result.headers,
            "response_body": result.body,
            "response_status_code": result.status_code,
            "response_size": result.response_size,
            "response_time": result.response_time,
        }
        try:
            self.repository.store(client_name, key, metadata, ttl)
        except ApiCacheError:
            raise
        except Exception as exc:
            _logger.exception(
                "Failed to store API response: client=%s key=%s", client_name, key
            )
            raise CacheWriteFailure(client_name, key, exc) from exc
        _logger.debug(
            "Stored API response in cache: client=%s key=%s ttl=%s",
            client_name,
            key,
            ttl,
        )
