"""Per-client zlib compression of stored payloads."""

import logging
import zlib
from dataclasses import dataclass, field

from api_cache.errors import CompressionFailure, DecompressionFailure

_logger = logging.getLogger(__name__)


@dataclass
class CompressionService:
    """Reversible payload compression, toggled per client.

    When compression is disabled for a client, ``compress`` and
    ``decompress`` return their input unchanged.
    """

    enabled_clients: dict[str, bool] = field(default_factory=dict)
    level: int = 6

    def is_enabled(self, client_name: str) -> bool:
        """Return whether rows for ``client_name`` are stored compressed.

        Unconfigured clients follow the ``default`` client.
        """
        if client_name in self.enabled_clients:
            return bool(self.enabled_clients[client_name])
        return bool(self.enabled_clients.get("default", False))

    def compress(self, client_name: str, data: bytes, context: str = "data") -> bytes:
        """Compress ``data`` if the client has compression enabled."""
        if not self.is_enabled(client_name):
            return data
        return self.force_compress(client_name, data, context)

    def decompress(
        self, client_name: str, data: bytes, context: str = "data"
    ) -> bytes:
        """Decompress ``data`` if the client has compression enabled."""
        if not self.is_enabled(client_name):
            return data
        return self.force_decompress(client_name, data, context)

    def force_compress(
        self, client_name: str, data: bytes, context: str = "data"
    ) -> bytes:
        """Compress ``data`` regardless of the client toggle."""
        try:
            compressed = zlib.compress(data, self.level)
        except (zlib.error, TypeError) as exc:
            _logger.error(
                "Failed to compress %s for %s (length=%s): %s",
                context,
                client_name,
                _length(data),
                exc,
            )
            raise CompressionFailure(f"Failed to compress {context}") from exc
        _logger.debug(
            "Compressed %s for %s: %s -> %s bytes",
            context,
            client_name,
            len(data),
            len(compressed),
        )
        return compressed

    def force_decompress(
        self, client_name: str, data: bytes, context: str = "data"
    ) -> bytes:
        """Decompress ``data`` regardless of the client toggle."""
        try:
            decompressed = zlib.decompress(data)
        except (zlib.error, TypeError) as exc:
            _logger.error(
                "Failed to decompress %s for %s (length=%s): %s",
                context,
                client_name,
                _length(data),
                exc,
            )
            raise DecompressionFailure(f"Failed to decompress {context}") from exc
        _logger.debug(
            "Decompressed %s for %s: %s -> %s bytes",
            context,
            client_name,
            len(data),
            len(decompressed),
        )
        return decompressed


def _length(data: object) -> int | None:
    try:
        return len(data)  # type: ignore[arg-type]
    except TypeError:
        return None
