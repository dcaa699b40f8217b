"""Durable, client-partitioned storage of cached API responses."""

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from api_cache.domain.cache import CacheEntry, CacheStats
from api_cache.errors import InvalidRequest, SerializationFailure
from api_cache.services.cache_keys import response_table_name
from api_cache.services.compression import CompressionService

HEADER_COLUMNS = ("request_headers", "response_headers")
BODY_COLUMNS = ("request_body", "response_body")
PAYLOAD_COLUMNS = HEADER_COLUMNS + BODY_COLUMNS

_logger = logging.getLogger(__name__)


class ResponseStore(Protocol):
    """Row persistence for response tables.

    Payload columns hold ``str`` in plain tables and ``bytes`` in compressed
    tables; the repository decides which.
    """

    def upsert(self, table: str, row: dict[str, object]) -> None:
        """Insert a row, replacing any existing row with the same key."""

    def insert(self, table: str, row: dict[str, object]) -> None:
        """Insert a row that must not already exist."""

    def fetch_live(
        self, table: str, key: str, now: datetime
    ) -> dict[str, object] | None:
        """Return the row for ``key`` if it has not expired at ``now``."""

    def fetch_batch(
        self, table: str, offset: int, limit: int
    ) -> list[dict[str, object]]:
        """Return up to ``limit`` rows ordered by key, starting at ``offset``."""

    def fetch(self, table: str, key: str) -> dict[str, object] | None:
        """Return the row for ``key`` regardless of expiry."""

    def exists(self, table: str, key: str) -> bool:
        """Return whether a row with ``key`` exists, expired or not."""

    def delete_expired(self, table: str, now: datetime) -> int:
        """Delete rows with ``expires_at <= now`` and return how many."""

    def count(self, table: str) -> int:
        """Count all rows."""

    def count_active(self, table: str, now: datetime) -> int:
        """Count rows that have not expired at ``now``."""

    def count_expired(self, table: str, now: datetime) -> int:
        """Count rows that have expired at ``now``."""

    def clear(self, table: str) -> int:
        """Delete every row and return how many."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class CacheRepository:
    """Stores and retrieves responses, compressing payloads per client."""

    response_store: ResponseStore
    compression: CompressionService
    clients: list[str] = field(default_factory=list)
    clock: Callable[[], datetime] = _utcnow

    def table_name(self, client_name: str, compressed: bool | None = None) -> str:
        """Return the client's table; defaults to its current compression mode."""
        if compressed is None:
            compressed = self.compression.is_enabled(client_name)
        return response_table_name(client_name, compressed)

    def store(
        self,
        client_name: str,
        key: str,
        metadata: Mapping[str, object],
        ttl: int | None = None,
    ) -> None:
        """Persist a response, overwriting any existing row for ``key``.

        ``metadata`` must carry ``endpoint`` and a non-empty ``response_body``.
        A ``ttl`` of ``None`` or ``0`` stores the entry without expiry.
        """
        now = self.clock()
        table = self.table_name(client_name)

        if not metadata.get("endpoint"):
            raise InvalidRequest("Missing required field: endpoint")
        if not metadata.get("response_body"):
            _logger.error(
                "Missing response_body for cache storage: client=%s key=%s",
                client_name,
                key,
            )
            raise InvalidRequest("Missing required field: response_body")
        if ttl is not None and ttl < 0:
            raise InvalidRequest(f"TTL must not be negative, got {ttl}")

        expires_at = now + timedelta(seconds=ttl) if ttl else None
        response_body = to_bytes(metadata["response_body"])
        response_size = metadata.get("response_size")

        row: dict[str, object] = {
            "client": client_name,
            "key": key,
            "version": metadata.get("version"),
            "endpoint": metadata["endpoint"],
            "base_url": metadata.get("base_url"),
            "full_url": metadata.get("full_url"),
            "method": metadata.get("method"),
            "attributes": metadata.get("attributes"),
            "credits": metadata.get("credits"),
            "cost": metadata.get("cost"),
            "request_params_summary": metadata.get("request_params_summary"),
            "request_headers": self._prepare_headers(
                client_name, metadata.get("request_headers"), "request_headers"
            ),
            "request_body": self._prepare_body(
                client_name, metadata.get("request_body"), "request_body"
            ),
            "response_headers": self._prepare_headers(
                client_name, metadata.get("response_headers"), "response_headers"
            ),
            "response_body": self._prepare_body(
                client_name, response_body, "response_body"
            ),
            "response_status_code": metadata.get("response_status_code"),
            "response_size": (
                int(response_size) if response_size is not None else len(response_body)
            ),
            "response_time": metadata.get("response_time"),
            "expires_at": expires_at,
            "created_at": now,
            "updated_at": now,
        }
        self.response_store.upsert(table, row)
        _logger.info(
            "Stored response in cache: client=%s key=%s table=%s expires_at=%s size=%s",
            client_name,
            key,
            table,
            expires_at,
            row["response_size"],
        )

    def get(self, client_name: str, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` with payloads decoded, or ``None``."""
        now = self.clock()
        table = self.table_name(client_name)
        row = self.response_store.fetch_live(table, key, now)
        if row is None:
            _logger.debug(
                "Cache miss: client=%s key=%s table=%s", client_name, key, table
            )
            return None

        expires_at = _parse_timestamp(row.get("expires_at"))
        if expires_at is not None and expires_at <= now:
            _logger.debug("Cache expired: client=%s key=%s", client_name, key)
            return None

        _logger.debug(
            "Cache hit: client=%s key=%s table=%s expires_at=%s",
            client_name,
            key,
            table,
            expires_at,
        )
        response_body = self._retrieve_body(
            client_name, row.get("response_body"), "response_body"
        )
        return CacheEntry(
            client=client_name,
            key=key,
            endpoint=str(row.get("endpoint") or ""),
            response_body=response_body or b"",
            version=row.get("version"),
            method=row.get("method"),
            base_url=row.get("base_url"),
            full_url=row.get("full_url"),
            attributes=row.get("attributes"),
            credits=row.get("credits"),
            cost=row.get("cost"),
            request_params_summary=row.get("request_params_summary"),
            request_headers=self._retrieve_headers(
                client_name, row.get("request_headers"), "request_headers"
            ),
            request_body=self._retrieve_body(
                client_name, row.get("request_body"), "request_body"
            ),
            response_headers=self._retrieve_headers(
                client_name, row.get("response_headers"), "response_headers"
            ),
            response_status_code=row.get("response_status_code"),
            response_size=int(row.get("response_size") or 0),
            response_time=row.get("response_time"),
            expires_at=expires_at,
            created_at=_parse_timestamp(row.get("created_at")),
            updated_at=_parse_timestamp(row.get("updated_at")),
        )

    def delete_expired(self, client_name: str | None = None) -> int:
        """Sweep expired rows for one client, or for every configured client."""
        client_names = [client_name] if client_name else list(self.clients)
        now = self.clock()
        total = 0
        for name in client_names:
            table = self.table_name(name)
            deleted = self.response_store.delete_expired(table, now)
            total += deleted
            _logger.info(
                "Deleted expired responses: client=%s table=%s deleted=%s",
                name,
                table,
                deleted,
            )
        return total

    def clear_table(self, client_name: str) -> int:
        """Delete every cached response for a client."""
        table = self.table_name(client_name)
        deleted = self.response_store.clear(table)
        _logger.info("Cleared response table: client=%s table=%s", client_name, table)
        return deleted

    def count_total(self, client_name: str) -> int:
        return self.response_store.count(self.table_name(client_name))

    def count_active(self, client_name: str) -> int:
        table = self.table_name(client_name)
        return self.response_store.count_active(table, self.clock())

    def count_expired(self, client_name: str) -> int:
        table = self.table_name(client_name)
        return self.response_store.count_expired(table, self.clock())

    def stats(self, client_name: str) -> CacheStats:
        """Return row counts for a client's current table."""
        table = self.table_name(client_name)
        now = self.clock()
        return CacheStats(
            client=client_name,
            table=table,
            compression_enabled=self.compression.is_enabled(client_name),
            total=self.response_store.count(table),
            active=self.response_store.count_active(table, now),
            expired=self.response_store.count_expired(table, now),
        )

    def _prepare_headers(
        self, client_name: str, headers: object, context: str
    ) -> str | bytes | None:
        if headers is None:
            return None
        if not isinstance(headers, Mapping):
            raise InvalidRequest(f"{context} must be a mapping")
        try:
            encoded = json.dumps(dict(headers), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise SerializationFailure(f"Cannot encode {context}: {exc}") from exc
        return self._encode_payload(client_name, encoded.encode("utf-8"), context)

    def _prepare_body(
        self, client_name: str, body: object, context: str
    ) -> str | bytes | None:
        if body is None:
            return None
        return self._encode_payload(client_name, to_bytes(body), context)

    def _encode_payload(
        self, client_name: str, data: bytes, context: str
    ) -> str | bytes:
        if self.compression.is_enabled(client_name):
            return self.compression.compress(client_name, data, context)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SerializationFailure(
                f"{context} is not UTF-8; enable compression to store binary payloads"
            ) from exc

    def _retrieve_headers(
        self, client_name: str, data: object, context: str
    ) -> dict[str, object] | None:
        raw = self._retrieve_body(client_name, data, context)
        if raw is None:
            return None
        try:
            decoded = json.loads(raw)
        except (UnicodeDecodeError, ValueError) as exc:
            raise SerializationFailure(f"Cannot decode {context}: {exc}") from exc
        if not isinstance(decoded, dict):
            raise SerializationFailure(f"Decoded {context} must be a mapping")
        return decoded

    def _retrieve_body(
        self, client_name: str, data: object, context: str
    ) -> bytes | None:
        if data is None:
            return None
        return self.compression.decompress(client_name, to_bytes(data), context)


def to_bytes(value: object) -> bytes:
    """Coerce a stored or caller-supplied payload to bytes."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise InvalidRequest(f"Expected bytes or str payload, got {type(value).__name__}")


def _parse_timestamp(value: object) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None
