"""Import Claude Code usage from local session JSONL files.

Claude Code writes one JSONL file per session under
``~/.claude/projects/<encoded-project-path>/<session-id>.jsonl``.
"""

import json
import logging
import math
from pathlib import Path
from typing import Any, Callable, Optional

from ..agents import AgentIds, wire_agent_id
from ..checksum import ChecksumError, file_checksum
from ..client import DeliveryClient, TransportError
from ..models.event import TelemetryEvent
from ..schema import SchemaError, build_event, flatten_data, validate_event
from ..sync_state import SyncStateTracker
from ..time import now_millis, parse_timestamp_millis
from .summary import ImportSummary

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_DIR = Path.home() / ".claude"
DEFAULT_LIMIT = 100
MIN_USER_CONTENT_CHARS = 50

# Micro-cents per token
INPUT_TOKEN_COST = 0.3
OUTPUT_TOKEN_COST = 1.5
CACHE_CREATION_TOKEN_COST = 0.3


def find_jsonl_files(projects_dir: Path) -> list[Path]:
    """Session files one level below the projects directory, in sorted order."""
    files: list[Path] = []
    try:
        for project_dir in sorted(p for p in projects_dir.iterdir() if p.is_dir()):
            files.extend(sorted(project_dir.glob("*.jsonl")))
    except OSError as e:
        logger.error(f"Failed to scan projects directory: {e}")
    return files


def extract_project_path(jsonl_file: Path) -> str:
    """Decode a project directory name like ``-Users-me-src-app`` to ``Users/me/src/app``."""
    dir_name = jsonl_file.parent.name
    if dir_name.startswith("-"):
        return dir_name[1:].replace("-", "/")
    return dir_name


def should_process_entry(entry: dict) -> bool:
    """Keep assistant messages with usage data and substantial user prompts."""
    message = entry.get("message")
    if not isinstance(message, dict):
        return False

    if entry.get("type") == "assistant" and message.get("usage"):
        return True

    if entry.get("type") == "user":
        content = message.get("content")
        if isinstance(content, str) and "isMeta" not in content:
            return len(content) > MIN_USER_CONTENT_CHARS

    return False


def estimate_cost_micro_cents(usage: Optional[dict]) -> int:
    """Rough cost estimate for a message's token usage."""
    if not usage:
        return 0
    cost = (
        (usage.get("input_tokens") or 0) * INPUT_TOKEN_COST
        + (usage.get("output_tokens") or 0) * OUTPUT_TOKEN_COST
        + (usage.get("cache_creation_input_tokens") or 0) * CACHE_CREATION_TOKEN_COST
    )
    # Halves round up
    return math.floor(cost + 0.5)


def transform_entry(
    entry: dict,
    project_path: str,
    session_id: str,
    user: Optional[str] = None,
) -> TelemetryEvent:
    """Build an (unvalidated) event for one session log entry."""
    message = entry.get("message") or {}
    usage = message.get("usage") if isinstance(message.get("usage"), dict) else None
    cost = estimate_cost_micro_cents(usage)

    payload: dict[str, Any] = {
        "session_id": session_id,
        "project_path": project_path,
        "type": entry.get("type"),
        "model": message.get("model"),
        "role": message.get("role"),
        "version": entry.get("version"),
        "user_type": entry.get("userType"),
        "usage": usage,
    }

    return build_event(
        wire_agent_id(AgentIds.CLAUDE_CODE),
        user=user,
        time=parse_timestamp_millis(entry.get("timestamp")) or now_millis(),
        bid=cost,
        mult=1,
        data=flatten_data(payload),
    )


def read_session_events(
    path: Path,
    limit: int = DEFAULT_LIMIT,
    user: Optional[str] = None,
) -> list[TelemetryEvent]:
    """Read up to ``limit`` lines of a session file and return valid events.

    Malformed lines and entries that fail validation are skipped.

    Raises:
        UnicodeDecodeError: If the file is not valid UTF-8
    """
    project_path = extract_project_path(path)
    session_id = path.stem
    events: list[TelemetryEvent] = []

    with open(path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f):
            if line_number >= limit:
                break
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                logger.debug(f"Skipped malformed JSON line in {path}: {e}")
                continue
            if not isinstance(entry, dict) or not should_process_entry(entry):
                continue

            try:
                events.append(validate_event(transform_entry(entry, project_path, session_id, user)))
            except SchemaError as e:
                logger.warning(f"Skipped invalid event in {path.name}: {e}")

    return events


def sync_claude_sessions(
    *,
    claude_dir: Path,
    client: DeliveryClient,
    tracker: SyncStateTracker,
    limit: int = DEFAULT_LIMIT,
    force: bool = False,
    user: Optional[str] = None,
    on_source_done: Optional[Callable[[Path], None]] = None,
) -> ImportSummary:
    """Send events from every changed session file and record what was synced.

    Args:
        claude_dir: Claude data directory (contains ``projects/``)
        client: Delivery client
        tracker: Sync state for the ``claude_sync`` section
        limit: Maximum lines read per file
        force: Re-send files even if their checksum is unchanged
        user: Optional user ULID stamped on every event
        on_source_done: Called after each file that was not skipped

    Raises:
        FileNotFoundError: If the projects directory does not exist
    """
    projects_dir = claude_dir / "projects"
    if not projects_dir.is_dir():
        raise FileNotFoundError(f"Claude projects directory not found: {projects_dir}")

    files = find_jsonl_files(projects_dir)
    summary = ImportSummary(sources_found=len(files))
    logger.info(f"Found {len(files)} Claude Code session files")

    for path in files:
        try:
            checksum = file_checksum(path)
        except ChecksumError as e:
            logger.error(str(e))
            summary.record_failure(str(path), str(e))
            continue

        if not force and tracker.is_synced(path, checksum):
            logger.debug(f"Skipping already synced file: {path.name}")
            summary.sources_skipped += 1
            continue

        try:
            events = read_session_events(path, limit=limit, user=user)
            if events:
                result = client.send_events(events)
                summary.events_sent += result.accepted_count
                summary.events_rejected += result.rejected_count
                if result.status != "accepted":
                    logger.warning(
                        f"{path.name}: {result.rejected_count} of {len(events)} events rejected"
                    )
        except (OSError, UnicodeDecodeError, TransportError) as e:
            logger.error(f"Failed to process {path}: {e}")
            summary.record_failure(str(path), str(e))
            if on_source_done:
                on_source_done(path)
            continue

        if events or force:
            tracker.record_synced(path, checksum, len(events))
        summary.sources_synced += 1
        if on_source_done:
            on_source_done(path)

    return summary
