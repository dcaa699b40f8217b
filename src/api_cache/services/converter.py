"""Batch migration of a client's rows between plain and compressed tables.

Toggling ``compression_enabled`` for a client switches which table the cache
reads and writes; existing rows stay where they are until this job copies them.
Copies never touch the source table, so a run can be repeated or resumed from
any offset: rows already present in the target are skipped unless
``overwrite`` is set.
"""

import logging
from dataclasses import dataclass
from typing import Literal

from api_cache.domain.conversion import ConversionStats
from api_cache.errors import ApiCacheError, SerializationFailure
from api_cache.services.cache_repository import (
    PAYLOAD_COLUMNS,
    CacheRepository,
    to_bytes,
)
from api_cache.services.compression import CompressionService

Direction = Literal["compress", "decompress"]

_logger = logging.getLogger(__name__)


@dataclass
class ResponsesTableConverter:
    """Copies rows into the opposite storage form, with validation."""

    client_name: str
    repository: CacheRepository
    compression: CompressionService
    direction: Direction = "compress"
    batch_size: int = 100
    overwrite: bool = False

    @property
    def source_table(self) -> str:
        return self.repository.table_name(
            self.client_name, compressed=self.direction == "decompress"
        )

    @property
    def target_table(self) -> str:
        return self.repository.table_name(
            self.client_name, compressed=self.direction == "compress"
        )

    def count_source_rows(self) -> int:
        return self.repository.response_store.count(self.source_table)

    def count_target_rows(self) -> int:
        return self.repository.response_store.count(self.target_table)

    def convert_row(self, row: dict[str, object]) -> dict[str, object]:
        """Return a copy of ``row`` with payload columns re-encoded."""
        converted = {name: value for name, value in row.items() if name != "id"}
        for column in PAYLOAD_COLUMNS:
            value = converted.get(column)
            if value is None:
                continue
            data = to_bytes(value)
            if self.direction == "compress":
                converted[column] = self.compression.force_compress(
                    self.client_name, data, column
                )
            else:
                converted[column] = _decode_text(
                    self.compression.force_decompress(self.client_name, data, column),
                    column,
                )
        return converted

    def convert_batch(
        self, batch_size: int | None = None, offset: int = 0
    ) -> ConversionStats:
        """Convert one batch of source rows starting at ``offset``."""
        size = batch_size or self.batch_size
        store = self.repository.response_store
        source, target = self.source_table, self.target_table
        rows = store.fetch_batch(source, offset, size)
        processed = skipped = errors = 0

        for row in rows:
            key = str(row.get("key"))
            if not self.overwrite and store.exists(target, key):
                skipped += 1
                continue
            try:
                converted = self.convert_row(row)
            except ApiCacheError as exc:
                _logger.error(
                    "Error converting row: client=%s key=%s error=%s",
                    self.client_name,
                    key,
                    exc,
                )
                errors += 1
                continue
            if self.overwrite:
                store.upsert(target, converted)
            else:
                store.insert(target, converted)
            processed += 1

        stats = ConversionStats(
            total_count=len(rows),
            processed_count=processed,
            skipped_count=skipped,
            error_count=errors,
        )
        _logger.debug(
            "Batch conversion completed: client=%s %s -> %s offset=%s stats=%s",
            self.client_name,
            source,
            target,
            offset,
            stats,
        )
        return stats

    def convert_all(self) -> ConversionStats:
        """Convert every source row, batch by batch."""
        total_rows = self.count_source_rows()
        _logger.info(
            "Starting table conversion: client=%s direction=%s rows=%s",
            self.client_name,
            self.direction,
            total_rows,
        )
        totals = ConversionStats()
        for offset in range(0, total_rows, self.batch_size):
            totals += self.convert_batch(self.batch_size, offset)
        _logger.info(
            "Table conversion completed: client=%s stats=%s", self.client_name, totals
        )
        return totals

    def validate_batch(
        self, batch_size: int | None = None, offset: int = 0
    ) -> ConversionStats:
        """Check that converted rows decode back to their source payloads.

        Valid rows count as processed, rows missing from the target as
        skipped, and mismatches or undecodable rows as errors.
        """
        size = batch_size or self.batch_size
        store = self.repository.response_store
        rows = store.fetch_batch(self.source_table, offset, size)
        processed = skipped = errors = 0

        for row in rows:
            key = str(row.get("key"))
            target_row = store.fetch(self.target_table, key)
            if target_row is None:
                skipped += 1
                continue
            if self._payloads_match(row, target_row):
                processed += 1
            else:
                _logger.warning(
                    "Converted row does not match source: client=%s key=%s",
                    self.client_name,
                    key,
                )
                errors += 1

        return ConversionStats(
            total_count=len(rows),
            processed_count=processed,
            skipped_count=skipped,
            error_count=errors,
        )

    def validate_all(self) -> ConversionStats:
        """Validate every source row against the target table."""
        totals = ConversionStats()
        for offset in range(0, self.count_source_rows(), self.batch_size):
            totals += self.validate_batch(self.batch_size, offset)
        return totals

    def _payloads_match(
        self, source_row: dict[str, object], target_row: dict[str, object]
    ) -> bool:
        for column in PAYLOAD_COLUMNS:
            source_value = source_row.get(column)
            target_value = target_row.get(column)
            if source_value is None and target_value is None:
                continue
            if source_value is None or target_value is None:
                return False
            plain, packed = (
                (source_value, target_value)
                if self.direction == "compress"
                else (target_value, source_value)
            )
            try:
                unpacked = self.compression.force_decompress(
                    self.client_name, to_bytes(packed), column
                )
            except ApiCacheError:
                return False
            if unpacked != to_bytes(plain):
                return False
        return True


def _decode_text(data: bytes, column: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SerializationFailure(
            f"{column} is not UTF-8 and cannot be stored in a plain table"
        ) from exc
