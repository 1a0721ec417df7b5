"""Pydantic models for persisted importer sync state."""

from typing import Optional

from pydantic import BaseModel, Field


class SyncRecord(BaseModel):
    """Sync record for one local source (a session file or a thread directory)."""

    path: str = Field(..., description="Absolute path of the source")
    checksum: str = Field(..., description="Checksum of the source when it was synced")
    last_modified: str = Field(..., description="ISO-8601 time the record was written")
    events_processed: int = Field(..., description="Events sent for this source")


class ClaudeSyncState(BaseModel):
    """Sync state for Claude Code session files."""

    last_sync: Optional[str] = None
    synced_files: list[SyncRecord] = Field(default_factory=list)


class AmpSyncState(BaseModel):
    """Sync state for Amp thread directories."""

    last_sync: Optional[str] = None
    synced_threads: list[SyncRecord] = Field(default_factory=list)
