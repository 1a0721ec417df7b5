"""Tests for the Amp thread importer."""

import os
from unittest.mock import Mock

import pytest

from arden.agents import AgentIds, wire_agent_id
from arden.client import TransportError
from arden.importers import amp
from arden.importers.amp import find_thread_directories, sync_amp_threads, transform_thread
from arden.models.delivery import DeliveryResult
from arden.schema import validate_event
from arden.sync_state import SyncStateTracker


def make_thread(threads_dir, thread_id, files, mtime=1700000000):
    path = threads_dir / thread_id
    path.mkdir(parents=True)
    for name, content in files.items():
        (path / name).write_text(content)
        os.utime(path / name, (mtime, mtime))
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def threads_dir(tmp_path):
    path = tmp_path / "file-changes"
    path.mkdir()
    return path


@pytest.fixture
def mock_client():
    client = Mock()
    client.send_events.return_value = DeliveryResult(accepted_count=1, chunks_sent=1)
    return client


def test_find_thread_directories(threads_dir):
    """Test that only directories are listed with their size and file count."""
    make_thread(threads_dir, "T-1", {"a.diff": "12345", "b.diff": "678"})
    (threads_dir / "stray.txt").write_text("not a thread")

    threads = find_thread_directories(threads_dir)

    assert [t.thread_id for t in threads] == ["T-1"]
    assert threads[0].file_count == 2
    assert threads[0].size == 8


def test_transform_thread(threads_dir):
    """Test the event built for a thread."""
    make_thread(threads_dir, "T-1", {"a.diff": "12345"})
    thread = find_thread_directories(threads_dir)[0]

    event = validate_event(transform_thread(thread))

    assert event.agent == wire_agent_id(AgentIds.AMP)
    assert event.mult == 1
    assert event.bid == 0
    assert event.time == int(thread.created_at.timestamp() * 1000)
    assert event.data == {
        "thread_id": "T-1",
        "type": "file-changes",
        "file_count": 1,
        "size_bytes": 5,
        "source": "amp_file_changes",
    }


def test_sync_missing_directory(tmp_path, mock_client, settings_store):
    """Test that a missing threads directory is an error."""
    with pytest.raises(FileNotFoundError):
        sync_amp_threads(
            threads_dir=tmp_path / "missing",
            client=mock_client,
            tracker=SyncStateTracker(settings_store, "amp_sync"),
        )


def test_sync_skips_unchanged_threads(threads_dir, mock_client, settings_store):
    """Test idempotent re-sync and invalidation when a thread changes."""
    path = make_thread(threads_dir, "T-1", {"a.diff": "12345"})
    make_thread(threads_dir, "T-2", {"a.diff": "x"})
    tracker = SyncStateTracker(settings_store, "amp_sync")

    first = sync_amp_threads(threads_dir=threads_dir, client=mock_client, tracker=tracker)
    assert first.sources_synced == 2
    assert len(tracker.records()) == 2

    second = sync_amp_threads(threads_dir=threads_dir, client=mock_client, tracker=tracker)
    assert second.sources_skipped == 2
    assert mock_client.send_events.call_count == 2

    (path / "b.diff").write_text("new change")
    third = sync_amp_threads(threads_dir=threads_dir, client=mock_client, tracker=tracker)
    assert third.sources_synced == 1
    assert third.sources_skipped == 1


def test_sync_failure_is_not_recorded(threads_dir, settings_store):
    """Test that a failed thread is retried next run."""
    make_thread(threads_dir, "T-1", {"a.diff": "12345"})
    tracker = SyncStateTracker(settings_store, "amp_sync")
    client = Mock()
    client.send_events.side_effect = TransportError("down", status_code=502)

    summary = sync_amp_threads(threads_dir=threads_dir, client=client, tracker=tracker)

    assert summary.sources_failed == 1
    assert tracker.records() == []


def test_find_thread_directories_skips_unreadable_entry(threads_dir, monkeypatch):
    """Test that one unreadable thread does not drop the others."""
    make_thread(threads_dir, "T-1", {"a.diff": "1"})
    make_thread(threads_dir, "T-2", {"a.diff": "2"})
    make_thread(threads_dir, "T-3", {"a.diff": "3"})
    real_created_at = amp._created_at

    def flaky_created_at(path):
        if path.name == "T-2":
            raise PermissionError("denied")
        return real_created_at(path)

    monkeypatch.setattr(amp, "_created_at", flaky_created_at)

    threads = find_thread_directories(threads_dir)

    assert sorted(t.thread_id for t in threads) == ["T-1", "T-3"]
