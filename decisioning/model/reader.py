"""Typed accessors over loosely-typed event data.

Absent keys return the supplied default; present keys of the wrong type
raise PayloadError so the caller can reject the whole item.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from decisioning.infra.errors import PayloadError


def get_string(data: Mapping[str, Any], key: str, default: str | None = None) -> str | None:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise PayloadError(f"'{key}' must be a string (got {type(value).__name__})")
    return value


def get_float(data: Mapping[str, Any], key: str, default: float = 0.0) -> float:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise PayloadError(f"'{key}' must be a number (got {type(value).__name__})")
    return float(value)


def get_int(data: Mapping[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise PayloadError(f"'{key}' must be an int (got {type(value).__name__})")
    return value


def get_map(data: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise PayloadError(f"'{key}' must be a mapping (got {type(value).__name__})")
    return dict(value)


def get_list(data: Mapping[str, Any], key: str) -> list[Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list | tuple):
        raise PayloadError(f"'{key}' must be a list (got {type(value).__name__})")
    return list(value)


def get_string_list(data: Mapping[str, Any], key: str) -> list[str] | None:
    values = get_list(data, key)
    if values is None:
        return None
    if not all(isinstance(v, str) for v in values):
        raise PayloadError(f"'{key}' must be a list of strings")
    return values


def get_string_map(data: Mapping[str, Any], key: str) -> dict[str, str] | None:
    values = get_map(data, key)
    if values is None:
        return None
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in values.items()):
        raise PayloadError(f"'{key}' must map strings to strings")
    return values
