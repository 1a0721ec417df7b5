"""Mask tokens and secrets before they reach logs or console output."""

import re
from collections.abc import Mapping
from typing import Any

SENSITIVE_KEY_PATTERNS = [
    re.compile(r"token", re.IGNORECASE),
    re.compile(r"secret", re.IGNORECASE),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"key", re.IGNORECASE),
    re.compile(r"authorization", re.IGNORECASE),
    re.compile(r"auth.*header", re.IGNORECASE),
    re.compile(r"credential", re.IGNORECASE),
]

REDACTED = "[REDACTED]"


def is_sensitive_key(key: str) -> bool:
    return any(pattern.search(key) for pattern in SENSITIVE_KEY_PATTERNS)


def mask_value(value: Any) -> str:
    """Keep the first and last four characters of long strings, redact the rest."""
    if not isinstance(value, str) or len(value) <= 8:
        return REDACTED
    return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"


def sanitize(obj: Any) -> Any:
    """Deep-copy mappings and lists, masking values under sensitive keys."""
    return _sanitize(obj, set())


def _sanitize(obj: Any, visiting: set[int]) -> Any:
    if not isinstance(obj, (Mapping, list, tuple)):
        return obj

    if id(obj) in visiting:
        return "[CIRCULAR]"
    visiting.add(id(obj))
    try:
        if isinstance(obj, Mapping):
            return {
                key: mask_value(value) if is_sensitive_key(str(key)) else _sanitize(value, visiting)
                for key, value in obj.items()
            }
        return [_sanitize(item, visiting) for item in obj]
    finally:
        visiting.discard(id(obj))
