"""Timestamp helpers shared by the schema, sync state and importers."""

import time as _time
from datetime import datetime, timezone
from typing import Any, Optional


def now_millis() -> int:
    """Current time as epoch milliseconds."""
    return int(_time.time() * 1000)


def iso_now() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return _format_iso(datetime.now(timezone.utc))


def iso_from_timestamp(ts: float) -> str:
    """Format a POSIX timestamp (seconds) the same way as iso_now()."""
    return _format_iso(datetime.fromtimestamp(ts, tz=timezone.utc))


def _format_iso(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp_millis(value: Any) -> Optional[int]:
    """Convert an epoch-millis number/string or an ISO-8601 string to epoch millis.

    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else None

    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return int(text)

    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    millis = int(dt.timestamp() * 1000)
    return millis if millis >= 0 else None
