"""Domain models for table conversion jobs."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ConversionStats:
    """Counters reported by a conversion or validation pass."""

    total_count: int = 0
    processed_count: int = 0
    skipped_count: int = 0
    error_count: int = 0

    def __add__(self, other: "ConversionStats") -> "ConversionStats":
        return ConversionStats(
            total_count=self.total_count + other.total_count,
            processed_count=self.processed_count + other.processed_count,
            skipped_count=self.skipped_count + other.skipped_count,
            error_count=self.error_count + other.error_count,
        )
