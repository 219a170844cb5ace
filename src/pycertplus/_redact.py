"""Redaction for trace logging.

Only headers and JSON bodies pass through here, so values are plain
mappings, lists and scalars.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SECRET_KEYS = frozenset({"x-api-key", "api_key", "apikey", "authorization"})
_MAX_STRING = 512


def redact_for_log(value: Any, *, max_string: int = _MAX_STRING) -> Any:
    """Copy of *value* with secrets masked and long strings cut to *max_string*."""
    if isinstance(value, Mapping):
        return {
            str(key): "<redacted>" if str(key).lower() in _SECRET_KEYS else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value
