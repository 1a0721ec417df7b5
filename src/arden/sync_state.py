"""Persisted sync state for local log importers.

Each importer owns one section of the settings file. A source (session file
or thread directory) is skipped when its stored checksum matches the
current one; any change means the source is reprocessed in full.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional, Union

from .config import SettingsStore, StateError
from .models.sync import AmpSyncState, ClaudeSyncState, SyncRecord
from .time import iso_now

logger = logging.getLogger(__name__)

SyncSection = Literal["claude_sync", "amp_sync"]

_SECTIONS = {
    "claude_sync": (ClaudeSyncState, "synced_files"),
    "amp_sync": (AmpSyncState, "synced_threads"),
}


def source_key(source: Union[str, Path]) -> str:
    """Absolute path used as the record key for a source."""
    return os.path.abspath(os.fspath(source))


class SyncStateTracker:
    """Tracks which sources have been delivered, keyed by path and checksum.

    State errors never abort a sync: an unreadable settings file means
    "not synced" and a failed write is logged and skipped.
    """

    def __init__(self, store: SettingsStore, section: SyncSection):
        if section not in _SECTIONS:
            raise ValueError(f"Unknown sync section: {section}")
        self.store = store
        self.section = section
        self._model, self._records_key = _SECTIONS[section]

    def records(self) -> list[SyncRecord]:
        """Stored records for this section.

        Raises:
            StateError: If the settings file is unreadable
        """
        settings = self.store.load_file(strict=True)
        state = getattr(settings, self.section)
        if state is None:
            return []
        return list(getattr(state, self._records_key))

    def last_sync(self) -> Optional[str]:
        settings = self.store.load_file()
        state = getattr(settings, self.section)
        return state.last_sync if state else None

    def is_synced(self, source: Union[str, Path], checksum: str) -> bool:
        """True if a record exists for this exact path with this exact checksum."""
        try:
            records = self.records()
        except StateError as e:
            logger.warning(f"Could not read sync state, treating {source} as not synced: {e}")
            return False

        key = source_key(source)
        return any(record.path == key and record.checksum == checksum for record in records)

    def record_synced(
        self,
        source: Union[str, Path],
        checksum: str,
        events_processed: int,
    ) -> Optional[SyncRecord]:
        """Upsert the record for a source after a successful delivery.

        Returns:
            The stored record, or None if the state could not be persisted
        """
        key = source_key(source)
        now = iso_now()

        try:
            settings = self.store.load_file(strict=True)
        except StateError as e:
            logger.warning(f"Not recording sync state for {key}: {e}")
            return None

        state = getattr(settings, self.section) or self._model()
        records = [r for r in getattr(state, self._records_key) if r.path != key]
        record = SyncRecord(
            path=key,
            checksum=checksum,
            last_modified=now,
            events_processed=events_processed,
        )
        records.append(record)

        state = state.model_copy(update={"last_sync": now, self._records_key: records})
        try:
            self.store.save(settings.model_copy(update={self.section: state}))
        except StateError as e:
            logger.warning(f"Not recording sync state for {key}: {e}")
            return None

        logger.debug(f"Recorded {key} as synced ({events_processed} events)")
        return record
