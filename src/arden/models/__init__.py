"""Pydantic models for Arden."""

from .delivery import ChunkResponse, DeliveryResult, DeliveryStatus, RejectedEvent
from .event import MAX_DATA_BYTES, TelemetryData, TelemetryEvent
from .stats import AgentInfo, AgentsPage, Leaderboard, LeaderboardEntry
from .sync import AmpSyncState, ClaudeSyncState, SyncRecord

__all__ = [
    # Events
    "MAX_DATA_BYTES",
    "TelemetryEvent",
    "TelemetryData",
    # Delivery
    "DeliveryStatus",
    "RejectedEvent",
    "ChunkResponse",
    "DeliveryResult",
    # Sync state
    "SyncRecord",
    "ClaudeSyncState",
    "AmpSyncState",
    # Stats API
    "AgentInfo",
    "AgentsPage",
    "LeaderboardEntry",
    "Leaderboard",
]
