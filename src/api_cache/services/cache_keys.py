"""Cache key derivation and client table naming."""

import hashlib
import logging
import re
from collections.abc import Mapping
from typing import Any

from api_cache.errors import InvalidIdentifier
from api_cache.services.params import encode_params, normalize_params

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_TABLE_PREFIX = "api_cache_"
_TABLE_RESPONSES = "_responses"
_TABLE_COMPRESSED = "_compressed"
_MAX_TABLE_NAME_LENGTH = 63

_logger = logging.getLogger(__name__)


def validate_identifier(client_name: str) -> None:
    """Ensure a client name only holds letters, digits, hyphens and underscores."""
    if not isinstance(client_name, str) or not _IDENTIFIER_PATTERN.match(client_name):
        raise InvalidIdentifier(f"Invalid client identifier: {client_name!r}")


def params_hash(params: Mapping[str, Any] | list[Any]) -> str:
    """SHA1 hex digest of the canonical encoding of ``params``."""
    encoded = encode_params(normalize_params(params))
    return hashlib.sha1(encoded, usedforsecurity=False).hexdigest()


def generate_cache_key(
    client_name: str,
    endpoint: str,
    params: Mapping[str, Any] | list[Any],
    method: str = "GET",
    version: str | None = None,
) -> str:
    """Build ``{client}.{method}.{endpoint}.{params_hash}[.{version}]``.

    The method is lowercased and one or more leading slashes are stripped from
    the endpoint; the endpoint is otherwise compared case-sensitively.
    """
    validate_identifier(client_name)
    components = [
        client_name,
        method.lower(),
        endpoint.lstrip("/"),
        params_hash(params),
    ]
    if version is not None:
        components.append(version)
    key = ".".join(components)
    _logger.debug("Generated cache key: client=%s key=%s", client_name, key)
    return key


def response_table_name(client_name: str, compressed: bool) -> str:
    """Return the physical response table for a client."""
    validate_identifier(client_name)
    sanitized = client_name.replace("-", "_")
    reserved = len(_TABLE_PREFIX + _TABLE_RESPONSES + _TABLE_COMPRESSED)
    sanitized = sanitized[: _MAX_TABLE_NAME_LENGTH - reserved]
    suffix = _TABLE_COMPRESSED if compressed else ""
    table = re.sub(r"_+", "_", f"{_TABLE_PREFIX}{sanitized}{_TABLE_RESPONSES}{suffix}")
    if table in {"api_cache_responses", "api_cache_responses_compressed"}:
        raise InvalidIdentifier(f"Client name sanitizes to nothing: {client_name!r}")
    return table
