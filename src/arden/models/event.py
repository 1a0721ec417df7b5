"""Pydantic models for Arden telemetry events."""

import base64
import binascii
import json
import math
import re
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

MAX_DATA_BYTES = 1024

AGENT_ID_PATTERN = re.compile(r"(?:[aA]-)?[0-9a-fA-F]{1,8}")

# Crockford base32, excludes I, L, O, U
ULID_PATTERN = re.compile(r"[0-9A-HJKMNP-TV-Z]{26}")

FlatValue = Union[str, int, float]


def encoded_data_size(data: Mapping) -> int:
    """Byte length of the compact UTF-8 JSON encoding of a data mapping."""
    encoded = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return len(encoded.encode("utf-8"))


def _check_flat_mapping(value: Mapping) -> dict[str, FlatValue]:
    for key, item in value.items():
        if not isinstance(key, str):
            raise ValueError("Data keys must be strings")
        if isinstance(item, bool) or not isinstance(item, (str, int, float)):
            raise ValueError(f"Data value for '{key}' must be a string or number")
        if isinstance(item, float) and not math.isfinite(item):
            raise ValueError(f"Data value for '{key}' must be a finite number")

    if encoded_data_size(value) > MAX_DATA_BYTES:
        raise ValueError(f"Encoded JSON data exceeds {MAX_DATA_BYTES} bytes")
    return dict(value)


def _check_base64(value: str) -> str:
    try:
        decoded = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError(f"Invalid base64 or decoded data exceeds {MAX_DATA_BYTES} bytes")
    if len(decoded) > MAX_DATA_BYTES:
        raise ValueError(f"Invalid base64 or decoded data exceeds {MAX_DATA_BYTES} bytes")
    return value


class TelemetryEvent(BaseModel):
    """A single telemetry event as accepted by the collection endpoint.

    Immutable once validated. Unknown fields are rejected and integer fields
    do not coerce from strings, floats or booleans.
    """

    agent: str = Field(..., description="Agent ID, optional A- prefix plus 1-8 hex digits")
    user: Optional[str] = Field(None, description="User ULID")
    time: int = Field(..., ge=0, description="Epoch milliseconds")
    bid: int = Field(0, ge=0, description="Bid amount in micro-cents")
    mult: int = Field(0, ge=0, description="Bid multiplier")
    data: Union[dict[str, FlatValue], str] = Field(
        default_factory=dict,
        description="Flat key/value payload or base64 blob (max 1024 bytes)",
    )

    model_config = {"extra": "forbid", "frozen": True, "strict": True}

    @field_validator("agent")
    @classmethod
    def _check_agent(cls, value: str) -> str:
        if not AGENT_ID_PATTERN.fullmatch(value):
            raise ValueError("Invalid agent ID format")
        return value

    @field_validator("user")
    @classmethod
    def _check_user(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not ULID_PATTERN.fullmatch(value):
            raise ValueError("Invalid ULID format")
        return value

    @field_validator("data", mode="plain")
    @classmethod
    def _check_data(cls, value: Any) -> Union[dict[str, FlatValue], str]:
        if isinstance(value, str):
            return _check_base64(value)
        if isinstance(value, Mapping):
            return _check_flat_mapping(value)
        raise ValueError("Data must be a flat object or a base64 string")

    def to_wire(self) -> dict[str, Any]:
        """Dict ready for JSON encoding; an absent user is omitted."""
        wire = self.model_dump()
        if wire.get("user") is None:
            wire.pop("user", None)
        return wire


class TelemetryData(BaseModel):
    """Loose telemetry record produced by log readers and hooks."""

    provider: str
    hook: str
    timestamp: str
    payload: Any = None
