"""Supabase-backed storage for API error rows."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from api_cache.services.error_log import ERROR_LOG_TABLE, ErrorLogStore


@dataclass
class SupabaseErrorLogStore(ErrorLogStore):
    """Appends error rows to the ``api_cache_errors`` table."""

    client: Client
    table: str = ERROR_LOG_TABLE

    def insert(self, row: dict[str, object]) -> None:
        payload = {
            column: value.isoformat() if isinstance(value, datetime) else value
            for column, value in row.items()
        }
        response = self.client.table(self.table).insert(payload).execute()
        if not response.data:
            raise RuntimeError(f"Failed to insert error row into {self.table}")
