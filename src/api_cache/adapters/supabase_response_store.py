"""Supabase-backed storage for cached response rows."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from api_cache.services.cache_repository import PAYLOAD_COLUMNS, ResponseStore

_BYTEA_PREFIX = "\\x"


@dataclass
class SupabaseResponseStore(ResponseStore):
    """Supabase implementation for per-client response tables.

    Compressed tables keep payload columns as ``bytea``; PostgREST exchanges
    those as ``\\x``-prefixed hex strings.
    """

    client: Client

    def upsert(self, table: str, row: dict[str, object]) -> None:
        """Insert or replace the row for ``row['key']``."""
        self.client.table(table).upsert(
            _serialize_row(row), on_conflict="key"
        ).execute()

    def insert(self, table: str, row: dict[str, object]) -> None:
        """Insert a new row."""
        response = self.client.table(table).insert(_serialize_row(row)).execute()
        if not response.data:
            raise RuntimeError(f"Failed to insert cache row into {table}")

    def fetch_live(
        self, table: str, key: str, now: datetime
    ) -> dict[str, object] | None:
        """Return the unexpired row for ``key``, if present."""
        response = (
            self.client.table(table)
            .select("*")
            .eq("key", key)
            .or_(f"expires_at.is.null,expires_at.gt.{now.isoformat()}")
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _deserialize_row(table, response.data[0])

    def fetch(self, table: str, key: str) -> dict[str, object] | None:
        """Return the row for ``key`` regardless of expiry."""
        response = (
            self.client.table(table).select("*").eq("key", key).limit(1).execute()
        )
        if not response.data:
            return None
        return _deserialize_row(table, response.data[0])

    def fetch_batch(
        self, table: str, offset: int, limit: int
    ) -> list[dict[str, object]]:
        """Return a page of rows ordered by key."""
        response = (
            self.client.table(table)
            .select("*")
            .order("key")
            .range(offset, offset + limit - 1)
            .execute()
        )
        return [_deserialize_row(table, row) for row in response.data or []]

    def exists(self, table: str, key: str) -> bool:
        """Return whether ``key`` has a row."""
        response = (
            self.client.table(table).select("key").eq("key", key).limit(1).execute()
        )
        return bool(response.data)

    def delete_expired(self, table: str, now: datetime) -> int:
        """Delete expired rows and return how many were removed."""
        response = (
            self.client.table(table)
            .delete()
            .lte("expires_at", now.isoformat())
            .execute()
        )
        return len(response.data or [])

    def count(self, table: str) -> int:
        """Count all rows."""
        response = self.client.table(table).select("key", count="exact").execute()
        return response.count or 0

    def count_active(self, table: str, now: datetime) -> int:
        """Count rows that are still live at ``now``."""
        response = (
            self.client.table(table)
            .select("key", count="exact")
            .or_(f"expires_at.is.null,expires_at.gt.{now.isoformat()}")
            .execute()
        )
        return response.count or 0

    def count_expired(self, table: str, now: datetime) -> int:
        """Count rows that have expired at ``now``."""
        response = (
            self.client.table(table)
            .select("key", count="exact")
            .lte("expires_at", now.isoformat())
            .execute()
        )
        return response.count or 0

    def clear(self, table: str) -> int:
        """Delete every row in the table."""
        response = self.client.table(table).delete().neq("key", "").execute()
        return len(response.data or [])


def _serialize_row(row: dict[str, object]) -> dict[str, object]:
    """Convert row values into JSON-safe PostgREST values."""
    serialized: dict[str, object] = {}
    for column, value in row.items():
        if isinstance(value, datetime):
            serialized[column] = value.isoformat()
        elif isinstance(value, (bytes, bytearray, memoryview)):
            serialized[column] = _BYTEA_PREFIX + bytes(value).hex()
        else:
            serialized[column] = value
    return serialized


def _deserialize_row(table: str, row: dict[str, object]) -> dict[str, object]:
    """Decode ``bytea`` payload columns of compressed tables back to bytes."""
    if not table.endswith("_compressed"):
        return dict(row)
    decoded = dict(row)
    for column in PAYLOAD_COLUMNS:
        value = decoded.get(column)
        if isinstance(value, str) and value.startswith(_BYTEA_PREFIX):
            decoded[column] = bytes.fromhex(value[len(_BYTEA_PREFIX) :])
    return decoded
