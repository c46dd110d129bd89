"""Response data sanitization before storage."""

from __future__ import annotations

import re
from typing import Any

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_string(value: str) -> str:
    """Strip NUL and control characters, then collapse whitespace runs."""
    value = value.replace("\x00", "")
    value = _CONTROL_CHARS.sub("", value)
    return _WHITESPACE_RUN.sub(" ", value).strip()


def sanitize_data(data: Any) -> Any:
    """Recursively sanitize strings inside lists, tuples and dicts.

    Non-string leaves (numbers, booleans, None) are returned unchanged.
    """
    if isinstance(data, str):
        return sanitize_string(data)
    if isinstance(data, dict):
        return {key: sanitize_data(value) for key, value in data.items()}
    if isinstance(data, list):
        return [sanitize_data(item) for item in data]
    if isinstance(data, tuple):
        return tuple(sanitize_data(item) for item in data)
    return data
