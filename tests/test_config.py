"""Tests for settings loading, environment overrides and saving."""

import json

import pytest

from arden.config import ArdenSettings, SettingsStore, StateError, default_settings_path


def test_defaults_without_file(settings_store):
    """Test that a missing settings file yields defaults."""
    settings = settings_store.resolve()

    assert settings.host == "https://ardenstats.com"
    assert settings.api_token is None
    assert settings.log_level == "info"
    assert settings.is_telemetry_enabled() is True


def test_default_settings_path_env_override(monkeypatch, tmp_path):
    """Test that ARDEN_SETTINGS_FILE overrides the settings location."""
    monkeypatch.setenv("ARDEN_SETTINGS_FILE", str(tmp_path / "custom.json"))

    assert default_settings_path() == tmp_path / "custom.json"
    assert SettingsStore().path == tmp_path / "custom.json"


def test_save_and_load_round_trip(settings_store):
    """Test that saved settings load back and omit unset values."""
    settings_store.save(ArdenSettings(api_token="tok-abcdefgh", user_id="01ARZ3NDEKTSV4RRFFQ69G5FAV"))

    raw = json.loads(settings_store.path.read_text())
    assert raw["api_token"] == "tok-abcdefgh"
    assert "telemetry_enabled" not in raw
    assert not settings_store.path.with_suffix(".tmp").exists()

    loaded = settings_store.load_file()
    assert loaded.user_id == "01ARZ3NDEKTSV4RRFFQ69G5FAV"


def test_env_overrides_file(settings_store, monkeypatch):
    """Test that environment variables take precedence over the file."""
    settings_store.save(ArdenSettings(api_token="from-file", host="https://file.test"))
    monkeypatch.setenv("ARDEN_API_TOKEN", "from-env")
    monkeypatch.setenv("ARDEN_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("ARDEN_TELEMETRY", "false")

    settings = settings_store.resolve()

    assert settings.api_token == "from-env"
    assert settings.host == "https://file.test"
    assert settings.log_level == "debug"
    assert settings.is_telemetry_enabled() is False


def test_cli_value_beats_env(settings_store, monkeypatch):
    """Test precedence of CLI option over environment for the host."""
    monkeypatch.setenv("ARDEN_HOST", "https://env.test/")

    assert settings_store.get_host() == "https://env.test"
    assert settings_store.get_host("https://cli.test/") == "https://cli.test"


def test_invalid_env_is_ignored(settings_store, monkeypatch):
    """Test that an invalid environment value falls back to file settings."""
    monkeypatch.setenv("ARDEN_HOST", "ftp://nope")

    assert settings_store.resolve().host == "https://ardenstats.com"


def test_corrupt_file_falls_back_to_defaults(settings_store):
    """Test non-strict loading of a corrupt file."""
    settings_store.path.parent.mkdir(parents=True)
    settings_store.path.write_text("[]")

    assert settings_store.load_file() == ArdenSettings()
    with pytest.raises(StateError):
        settings_store.load_file(strict=True)


def test_update_merges_fields(settings_store):
    """Test that update keeps existing fields and validates new ones."""
    settings_store.update(api_token="tok-1")
    settings_store.update(host="https://example.test/")

    settings = settings_store.load_file()
    assert settings.api_token == "tok-1"
    assert settings.host == "https://example.test"

    with pytest.raises(StateError, match="Invalid settings"):
        settings_store.update(log_level="verbose")


def test_save_failure_raises_state_error(tmp_path):
    """Test that write failures surface as StateError."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store = SettingsStore(blocker / "settings.json")

    with pytest.raises(StateError, match="Failed to save settings"):
        store.save(ArdenSettings())
