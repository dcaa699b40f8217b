"""Tests for per-client compression."""

import zlib

import pytest

from api_cache.errors import DecompressionFailure
from api_cache.services.compression import CompressionService


def test_disabled_client_passes_data_through() -> None:
    service = CompressionService({"openai": False})

    assert service.compress("openai", b"payload") == b"payload"
    assert service.decompress("openai", b"payload") == b"payload"


def test_enabled_client_round_trips() -> None:
    service = CompressionService({"pixabay": True})
    data = b'{"hits": []}' * 50

    compressed = service.compress("pixabay", data)

    assert compressed != data
    assert zlib.decompress(compressed) == data
    assert service.decompress("pixabay", compressed) == data


def test_empty_payload_round_trips() -> None:
    service = CompressionService({"pixabay": True})

    assert service.decompress("pixabay", service.compress("pixabay", b"")) == b""


def test_unconfigured_client_follows_default() -> None:
    service = CompressionService({"default": True})

    assert service.is_enabled("unknown")
    assert not CompressionService({}).is_enabled("unknown")


def test_corrupt_payload_raises_decompression_failure() -> None:
    service = CompressionService({"pixabay": True})

    with pytest.raises(DecompressionFailure):
        service.decompress("pixabay", b"not zlib data", "response_body")


def test_force_codec_ignores_toggle() -> None:
    service = CompressionService({"openai": False})

    packed = service.force_compress("openai", b"abc")

    assert service.force_decompress("openai", packed) == b"abc"
