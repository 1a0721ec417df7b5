"""Pytest fixtures for Arden CLI tests."""

import pytest

from arden.config import SettingsStore

ARDEN_ENV_VARS = (
    "ARDEN_API_TOKEN",
    "ARDEN_USER_ID",
    "ARDEN_HOST",
    "ARDEN_LOG_LEVEL",
    "ARDEN_DEFAULT_FORMAT",
    "ARDEN_INTERACTIVE",
    "ARDEN_TELEMETRY",
    "ARDEN_SETTINGS_FILE",
)


@pytest.fixture(autouse=True)
def clean_arden_env(monkeypatch):
    """Keep the developer's ARDEN_* environment out of tests."""
    for name in ARDEN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings_path(tmp_path):
    """Path to a settings file inside a temporary home directory.

    Returns:
        Path to (not yet existing) settings.json
    """
    return tmp_path / ".arden" / "settings.json"


@pytest.fixture
def settings_store(settings_path):
    """SettingsStore backed by a temporary settings file."""
    return SettingsStore(settings_path)


@pytest.fixture
def event_dict():
    """A minimal valid candidate event."""
    return {"agent": "A-1F2E", "time": 1700000000000}
