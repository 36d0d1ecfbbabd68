"""JSON codec helpers for configuration export/import paths."""

from __future__ import annotations

from typing import Any

import orjson

from broadside.errors import ConfigurationError


def dumps_bytes(payload: Any, *, pretty: bool = False, sort_keys: bool = False) -> bytes:
    """Serialize payload to UTF-8 JSON bytes."""
    options = 0
    if pretty:
        options |= orjson.OPT_INDENT_2
    if sort_keys:
        options |= orjson.OPT_SORT_KEYS
    return orjson.dumps(payload, option=options)


def dumps_text(payload: Any, *, pretty: bool = False, sort_keys: bool = False) -> str:
    return dumps_bytes(payload, pretty=pretty, sort_keys=sort_keys).decode("utf-8")


def loads_object(text: str | bytes) -> dict[str, Any]:
    """Parse a JSON document whose top level must be an object."""
    try:
        payload = orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        raise ConfigurationError("Invalid configuration format.") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Configuration payload must be a JSON object.")
    return payload


__all__ = ["dumps_bytes", "dumps_text", "loads_object"]
