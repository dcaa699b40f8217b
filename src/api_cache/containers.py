"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from api_cache.adapters.http_client import CachedApiClient
from api_cache.adapters.redis_counter_store import RedisCounterStore
from api_cache.adapters.supabase_error_log_store import SupabaseErrorLogStore
from api_cache.adapters.supabase_response_store import SupabaseResponseStore
from api_cache.config import (
    Settings,
    cache_ttls,
    compression_flags,
    rate_limit_policies,
)
from api_cache.services.api_cache_manager import ApiCacheManager
from api_cache.services.cache_repository import CacheRepository
from api_cache.services.compression import CompressionService
from api_cache.services.converter import Direction, ResponsesTableConverter
from api_cache.services.error_log import ErrorLogger
from api_cache.services.rate_limiter import RateLimiter


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    compression: CompressionService
    repository: CacheRepository
    rate_limiter: RateLimiter
    cache_manager: ApiCacheManager
    close_resources: Callable[[], Awaitable[None]]
    error_logger: ErrorLogger | None = None

    def api_client(self, client_name: str) -> CachedApiClient:
        """Create a cached HTTP client for a configured API client."""
        return CachedApiClient.create(
            client_name,
            self.settings.client(client_name),
            self.cache_manager,
            error_logger=self.error_logger,
        )

    def converter(
        self,
        client_name: str,
        direction: Direction = "compress",
        batch_size: int = 100,
        overwrite: bool = False,
    ) -> ResponsesTableConverter:
        """Create a table converter for moving rows between storage forms."""
        return ResponsesTableConverter(
            client_name=client_name,
            repository=self.repository,
            compression=self.compression,
            direction=direction,
            batch_size=batch_size,
            overwrite=overwrite,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    counter_store = RedisCounterStore.create(resolved_settings.redis_url)
    compression = CompressionService(compression_flags(resolved_settings))
    repository = CacheRepository(
        response_store=SupabaseResponseStore(supabase_client),
        compression=compression,
        clients=list(resolved_settings.clients),
    )
    rate_limiter = RateLimiter(
        counter_store=counter_store,
        policies=rate_limit_policies(resolved_settings),
    )
    cache_manager = ApiCacheManager(
        repository=repository,
        rate_limiter=rate_limiter,
        default_ttls=cache_ttls(resolved_settings),
    )
    error_logger = ErrorLogger(
        store=SupabaseErrorLogStore(supabase_client),
        settings=resolved_settings.error_logging,
    )

    async def close_resources() -> None:
        counter_store.close()

    return AppContainer(
        settings=resolved_settings,
        compression=compression,
        repository=repository,
        rate_limiter=rate_limiter,
        cache_manager=cache_manager,
        close_resources=close_resources,
        error_logger=error_logger,
    )
