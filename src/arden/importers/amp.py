"""Import Amp thread activity from its file-changes directory.

Amp keeps one directory per thread under ``~/.amp/file-changes``. Each
thread is reported as a single event summarising its size and file count.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..agents import AgentIds, wire_agent_id
from ..checksum import ChecksumError, directory_checksum
from ..client import DeliveryClient, TransportError
from ..models.event import TelemetryEvent
from ..schema import SchemaError, build_event, validate_event
from ..sync_state import SyncStateTracker
from .summary import ImportSummary

logger = logging.getLogger(__name__)

DEFAULT_THREADS_DIR = Path.home() / ".amp" / "file-changes"


@dataclass
class AmpThread:
    thread_id: str
    path: Path
    created_at: datetime
    size: int
    file_count: int


def _scan_tree(path: Path) -> tuple[int, int]:
    """Return (file_count, total_size) for a directory tree, ignoring unreadable entries."""
    file_count = 0
    total_size = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                total_size += os.stat(os.path.join(dirpath, name)).st_size
            except OSError:
                continue
            file_count += 1
    return file_count, total_size


def _created_at(path: Path) -> datetime:
    stats = path.stat()
    # st_birthtime is only available on macOS/BSD
    created = getattr(stats, "st_birthtime", None) or stats.st_mtime
    return datetime.fromtimestamp(created, tz=timezone.utc)


def find_thread_directories(threads_dir: Path) -> list[AmpThread]:
    """Thread directories directly below ``threads_dir``, newest first."""
    threads: list[AmpThread] = []
    try:
        entries = list(threads_dir.iterdir())
    except OSError as e:
        logger.error(f"Failed to scan threads directory: {e}")
        return threads

    for entry in entries:
        try:
            if not entry.is_dir():
                continue
            created_at = _created_at(entry)
        except OSError as e:
            logger.warning(f"Skipping unreadable thread directory {entry}: {e}")
            continue
        file_count, size = _scan_tree(entry)
        threads.append(
            AmpThread(
                thread_id=entry.name,
                path=entry,
                created_at=created_at,
                size=size,
                file_count=file_count,
            )
        )

    return sorted(threads, key=lambda t: (t.created_at, t.thread_id), reverse=True)


def transform_thread(thread: AmpThread, user: Optional[str] = None) -> TelemetryEvent:
    """Build an (unvalidated) event for one thread."""
    return build_event(
        wire_agent_id(AgentIds.AMP),
        user=user,
        time=int(thread.created_at.timestamp() * 1000),
        bid=0,
        mult=1,
        data={
            "thread_id": thread.thread_id,
            "type": "file-changes",
            "file_count": thread.file_count,
            "size_bytes": thread.size,
            "source": "amp_file_changes",
        },
    )


def sync_amp_threads(
    *,
    threads_dir: Path,
    client: DeliveryClient,
    tracker: SyncStateTracker,
    force: bool = False,
    user: Optional[str] = None,
    content_checksums: bool = False,
    on_source_done: Optional[Callable[[Path], None]] = None,
) -> ImportSummary:
    """Send one event per changed thread directory and record what was synced.

    Args:
        threads_dir: Amp file-changes directory
        client: Delivery client
        tracker: Sync state for the ``amp_sync`` section
        force: Re-send threads even if their checksum is unchanged
        user: Optional user ULID stamped on every event
        content_checksums: Fingerprint file bytes instead of mtime and size
        on_source_done: Called after each thread that was not skipped

    Raises:
        FileNotFoundError: If the threads directory does not exist
    """
    if not threads_dir.is_dir():
        raise FileNotFoundError(f"Amp threads directory not found: {threads_dir}")

    threads = find_thread_directories(threads_dir)
    summary = ImportSummary(sources_found=len(threads))
    logger.info(f"Found {len(threads)} Amp thread directories")

    for thread in threads:
        try:
            checksum = directory_checksum(thread.path, content=content_checksums)
        except ChecksumError as e:
            logger.error(str(e))
            summary.record_failure(str(thread.path), str(e))
            continue

        if not force and tracker.is_synced(thread.path, checksum):
            logger.debug(f"Skipping already synced thread: {thread.thread_id}")
            summary.sources_skipped += 1
            continue

        try:
            event = validate_event(transform_thread(thread, user=user))
            result = client.send_events([event])
        except (SchemaError, TransportError) as e:
            logger.error(f"Failed to process thread {thread.thread_id}: {e}")
            summary.record_failure(str(thread.path), str(e))
            if on_source_done:
                on_source_done(thread.path)
            continue

        summary.events_sent += result.accepted_count
        summary.events_rejected += result.rejected_count
        tracker.record_synced(thread.path, checksum, 1)
        summary.sources_synced += 1
        if on_source_done:
            on_source_done(thread.path)

    return summary
