"""Validation and construction helpers for telemetry events."""

import json
import re
from collections.abc import Mapping
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from .models.event import TelemetryEvent
from .time import now_millis

_AGENT_PREFIX = re.compile(r"^[aA]-")


class SchemaError(ValueError):
    """Raised when a candidate event fails validation.

    Attributes:
        field: Name of the first offending field, if known
        index: Position of the event within a batch, if validated as part of one
    """

    def __init__(self, message: str, field: Optional[str] = None, index: Optional[int] = None):
        super().__init__(message)
        self.field = field
        self.index = index


def _describe(error: ValidationError) -> tuple[str, Optional[str]]:
    parts: list[str] = []
    first_field: Optional[str] = None
    for item in error.errors():
        loc = item.get("loc") or ()
        field = str(loc[0]) if loc else "event"
        if first_field is None:
            first_field = field
        msg = item.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{field}: {msg}")
    return "; ".join(parts), first_field


def validate_event(candidate: Any) -> TelemetryEvent:
    """Validate a candidate event.

    Args:
        candidate: Mapping (e.g. parsed JSON) or TelemetryEvent

    Returns:
        Validated, immutable TelemetryEvent

    Raises:
        SchemaError: If any field is missing, malformed, oversized or unknown
    """
    if isinstance(candidate, TelemetryEvent):
        candidate = dict(candidate)
    if not isinstance(candidate, Mapping):
        raise SchemaError(
            f"Event must be a JSON object, got {type(candidate).__name__}", field="event"
        )

    payload = dict(candidate)
    # None means "not supplied" for the optional user field
    if payload.get("user", "") is None:
        payload.pop("user")

    try:
        return TelemetryEvent.model_validate(payload)
    except ValidationError as e:
        message, field = _describe(e)
        raise SchemaError(message, field=field) from e


def validate_events(candidates: Iterable[Any]) -> list[TelemetryEvent]:
    """Validate a batch of candidate events, stopping at the first failure.

    Raises:
        SchemaError: With ``index`` set to the 0-based position of the first
            invalid event
    """
    validated: list[TelemetryEvent] = []
    for index, candidate in enumerate(candidates):
        try:
            validated.append(validate_event(candidate))
        except SchemaError as e:
            raise SchemaError(
                f"Event at index {index} is invalid: {e}", field=e.field, index=index
            ) from e
    return validated


def build_event(
    agent: str,
    *,
    user: Optional[str] = None,
    time: Optional[int] = None,
    bid: Optional[int] = None,
    mult: Optional[int] = None,
    data: Any = None,
) -> TelemetryEvent:
    """Build an event filling in defaults. Does not validate.

    Call validate_event() on the result before queueing it for delivery.
    """
    return TelemetryEvent.model_construct(
        agent=agent,
        user=user,
        time=now_millis() if time is None else time,
        bid=0 if bid is None else bid,
        mult=0 if mult is None else mult,
        data={} if data is None else data,
    )


def normalize_agent_id(agent_id: str) -> str:
    """Strip a single leading A-/a- prefix from an agent ID."""
    return _AGENT_PREFIX.sub("", agent_id, count=1)


def flatten_data(payload: Mapping, prefix: str = "") -> dict[str, Any]:
    """Flatten a nested payload into the flat string/number mapping events carry.

    Nested mappings become dotted keys, lists are JSON-encoded, booleans
    become 0/1 and None values are dropped.
    """
    flat: dict[str, Any] = {}
    for key, value in payload.items():
        name = f"{prefix}{key}"
        if value is None:
            continue
        if isinstance(value, Mapping):
            flat.update(flatten_data(value, prefix=f"{name}."))
        elif isinstance(value, bool):
            flat[name] = int(value)
        elif isinstance(value, (str, int, float)):
            flat[name] = value
        else:
            flat[name] = json.dumps(value, separators=(",", ":"), default=str)
    return flat
