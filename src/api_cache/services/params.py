"""Canonical parameter handling for cache fingerprints.

Parameter trees are limited to ``ParamValue``: JSON scalars, lists and
string-keyed maps. Normalization drops null map entries and sorts map keys so
that logically identical requests encode to identical bytes. Lists keep their
order and their null elements, since position is significant.
"""

import json
from collections.abc import Mapping
from typing import Any

from api_cache.errors import (
    MaxDepthExceeded,
    SerializationFailure,
    UnsupportedParameterType,
)

ParamValue = (
    bool | int | float | str | None | list["ParamValue"] | dict[str, "ParamValue"]
)

DEFAULT_MAX_DEPTH = 20
DEFAULT_SUMMARY_LIMIT = 100

_SCALARS = (bool, int, float, str)


def normalize_params(
    params: Mapping[str, Any] | list[Any],
    depth: int = 0,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> dict[str, ParamValue] | list[ParamValue]:
    """Return the canonical form of a parameter map.

    Raises:
        UnsupportedParameterType: a value or key has no canonical encoding.
        MaxDepthExceeded: containers are nested deeper than ``max_depth``.
    """
    if isinstance(params, Mapping):
        return _normalize_mapping(params, depth, max_depth, "")
    if isinstance(params, (list, tuple)):
        return _normalize_sequence(params, depth, max_depth, "")
    raise UnsupportedParameterType("", params)


def _normalize_mapping(
    params: Mapping[Any, Any], depth: int, max_depth: int, path: str
) -> dict[str, ParamValue]:
    if depth > max_depth:
        raise MaxDepthExceeded(max_depth)
    for key in params:
        if not isinstance(key, str):
            raise UnsupportedParameterType(f"{path}[{key!r}]", key)
    normalized: dict[str, ParamValue] = {}
    for key in sorted(params):
        value = params[key]
        if value is None:
            continue
        normalized[key] = _normalize_value(value, depth, max_depth, f"{path}.{key}")
    return normalized


def _normalize_sequence(
    values: list[Any] | tuple[Any, ...], depth: int, max_depth: int, path: str
) -> list[ParamValue]:
    if depth > max_depth:
        raise MaxDepthExceeded(max_depth)
    return [
        _normalize_value(value, depth, max_depth, f"{path}[{index}]")
        for index, value in enumerate(values)
    ]


def _normalize_value(value: Any, depth: int, max_depth: int, path: str) -> ParamValue:
    if value is None or isinstance(value, _SCALARS):
        return value
    if isinstance(value, Mapping):
        return _normalize_mapping(value, depth + 1, max_depth, path)
    if isinstance(value, (list, tuple)):
        return _normalize_sequence(value, depth + 1, max_depth, path)
    raise UnsupportedParameterType(path.lstrip("."), value)


def encode_params(normalized: dict[str, ParamValue] | list[ParamValue]) -> bytes:
    """Serialize normalized parameters to canonical UTF-8 JSON bytes."""
    try:
        text = json.dumps(
            normalized, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        )
        return text.encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationFailure(f"Cannot encode parameters: {exc}") from exc


def summarize_params(
    params: Mapping[str, Any] | list[Any],
    *,
    normalize: bool = True,
    pretty_print: bool = False,
    character_limit: int = DEFAULT_SUMMARY_LIMIT,
    detect_task_array: bool = True,
) -> str:
    """Render a short, human-readable JSON summary of request parameters."""
    if (
        detect_task_array
        and isinstance(params, list)
        and len(params) == 1
        and isinstance(params[0], Mapping)
    ):
        params = params[0]
    if normalize:
        params = normalize_params(params)

    try:
        if isinstance(params, Mapping):
            summary: object = {
                key: _summarize_value(value, character_limit)
                for key, value in params.items()
            }
        else:
            summary = [_summarize_value(value, character_limit) for value in params]
        return json.dumps(
            summary, ensure_ascii=False, indent=2 if pretty_print else None
        )
    except (TypeError, ValueError) as exc:
        raise SerializationFailure(f"Cannot summarize parameters: {exc}") from exc


def _summarize_value(value: Any, limit: int) -> object:
    if isinstance(value, (Mapping, list, tuple)):
        value = json.dumps(value, ensure_ascii=False)
    if isinstance(value, str) and len(value) > limit:
        return value[:limit] + "..."
    return value
