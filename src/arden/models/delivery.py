"""Pydantic models for event delivery responses."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

DeliveryStatus = Literal["accepted", "partial", "rejected"]


class RejectedEvent(BaseModel):
    """An event the collection endpoint refused, with its position and reason."""

    index: int = Field(..., description="Position of the rejected event")
    error: str = Field(..., description="Reason given by the endpoint")


class ChunkResponse(BaseModel):
    """Response body for a single POST to the events endpoint."""

    status: DeliveryStatus
    accepted_count: int
    rejected_count: Optional[int] = None
    event_ids: Optional[list[str]] = None
    rejected: Optional[list[RejectedEvent]] = None


class DeliveryResult(BaseModel):
    """Aggregated outcome of delivering a list of events in chunks."""

    status: DeliveryStatus = "accepted"
    accepted_count: int = 0
    rejected_count: int = 0
    event_ids: list[str] = Field(default_factory=list)
    rejected: list[RejectedEvent] = Field(default_factory=list)
    chunks_sent: int = Field(0, description="Number of chunk requests that completed")
