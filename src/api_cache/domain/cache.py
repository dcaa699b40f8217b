"""Domain models for cached responses."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CacheEntry:
    """A cached API response, decoded into caller-facing form."""

    client: str
    key: str
    endpoint: str
    response_body: bytes
    version: str | None = None
    method: str | None = None
    base_url: str | None = None
    full_url: str | None = None
    attributes: str | None = None
    credits: int | None = None
    cost: float | None = None
    request_params_summary: str | None = None
    request_headers: dict[str, object] | None = None
    request_body: bytes | None = None
    response_headers: dict[str, object] | None = None
    response_status_code: int | None = None
    response_size: int = 0
    response_time: float | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_live(self, now: datetime) -> bool:
        """Return whether the entry is retrievable at ``now``."""
        return self.expires_at is None or self.expires_at > now


@dataclass(frozen=True)
class CacheStats:
    """Row counts for a client's response table."""

    client: str
    table: str
    compression_enabled: bool
    total: int
    active: int
    expired: int
