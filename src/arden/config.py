"""Settings management for the Arden CLI.

Settings live in ``~/.arden/settings.json`` and are merged with environment
variables. A SettingsStore is passed explicitly to every component that
reads or writes persisted state.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .models.sync import AmpSyncState, ClaudeSyncState

logger = logging.getLogger(__name__)

DEFAULT_HOST = "https://ardenstats.com"


class StateError(RuntimeError):
    """Raised when the settings file cannot be read, parsed or written."""
    pass


def default_settings_path() -> Path:
    """Settings file location; ARDEN_SETTINGS_FILE overrides ~/.arden/settings.json."""
    override = os.environ.get("ARDEN_SETTINGS_FILE")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".arden" / "settings.json"


def _env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


class ArdenSettings(BaseModel):
    """Persisted CLI settings plus importer sync state."""

    # Core settings
    api_token: Optional[str] = Field(default=None)
    user_id: Optional[str] = Field(default=None)
    host: str = Field(default=DEFAULT_HOST)

    # CLI preferences
    log_level: Literal["debug", "info", "warn", "error"] = Field(default="info")
    default_format: Literal["json", "table", "yaml"] = Field(default="table")
    interactive: bool = Field(default=True)
    telemetry_enabled: Optional[bool] = Field(default=None)

    # Sync state tracking
    claude_sync: Optional[ClaudeSyncState] = Field(default=None)
    amp_sync: Optional[AmpSyncState] = Field(default=None)

    @field_validator("host")
    @classmethod
    def _check_host(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"host must be an http(s) URL: {value}")
        return value.rstrip("/")

    def is_telemetry_enabled(self) -> bool:
        """Telemetry defaults to enabled unless explicitly switched off."""
        return self.telemetry_enabled is not False


class SettingsStore:
    """Reads and writes the settings file as a whole.

    Every save is a full read-modify-write; concurrent CLI processes race
    with last-writer-wins semantics.
    """

    def __init__(self, path: Optional[Path] = None):
        """Initialize the store.

        Args:
            path: Settings file. If None, uses default_settings_path().
        """
        self.path = Path(path) if path is not None else default_settings_path()

    def load_file(self, strict: bool = False) -> ArdenSettings:
        """Load settings from the file only (no environment overrides).

        Args:
            strict: Raise StateError on an unreadable or invalid file instead
                of warning and falling back to defaults

        Returns:
            ArdenSettings from file, or defaults if the file does not exist
        """
        if not self.path.exists():
            return ArdenSettings()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return ArdenSettings.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            if strict:
                raise StateError(f"Failed to read settings file {self.path}: {e}") from e
            logger.warning(f"Invalid settings file {self.path}: {e}, using defaults")
            return ArdenSettings()

    def resolve(self) -> ArdenSettings:
        """Load settings with environment variables layered over the file."""
        settings = self.load_file()
        overrides = self._env_overrides()
        if not overrides:
            return settings

        try:
            return ArdenSettings.model_validate({**settings.model_dump(), **overrides})
        except ValidationError as e:
            logger.warning(f"Ignoring invalid environment settings: {e}")
            return settings

    def save(self, settings: ArdenSettings) -> None:
        """Write settings to disk atomically.

        Raises:
            StateError: If the file cannot be written
        """
        data = settings.model_dump(exclude_none=True)

        temp_file = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.path)
            logger.debug(f"Saved settings to {self.path}")
        except OSError as e:
            if temp_file.exists():
                temp_file.unlink()
            raise StateError(f"Failed to save settings to {self.path}: {e}") from e

    def update(self, **fields: Any) -> ArdenSettings:
        """Merge fields into the persisted settings and save them.

        Raises:
            StateError: If the current file is corrupt, the merged settings are
                invalid, or the write fails
        """
        current = self.load_file(strict=True)
        try:
            merged = ArdenSettings.model_validate({**current.model_dump(), **fields})
        except ValidationError as e:
            raise StateError(f"Invalid settings: {e}") from e
        self.save(merged)
        return merged

    def get_host(self, cli_host: Optional[str] = None) -> str:
        """CLI option, then environment, then file, then the default host."""
        return (cli_host or self.resolve().host).rstrip("/")

    def get_api_token(self, cli_token: Optional[str] = None) -> Optional[str]:
        return cli_token or self.resolve().api_token

    def get_user_id(self, cli_user: Optional[str] = None) -> Optional[str]:
        return cli_user or self.resolve().user_id

    @staticmethod
    def _env_overrides() -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, env_name in (
            ("api_token", "ARDEN_API_TOKEN"),
            ("user_id", "ARDEN_USER_ID"),
            ("host", "ARDEN_HOST"),
            ("log_level", "ARDEN_LOG_LEVEL"),
            ("default_format", "ARDEN_DEFAULT_FORMAT"),
        ):
            value = os.environ.get(env_name)
            if value:
                overrides[key] = value.lower() if key == "log_level" else value

        interactive = _env_bool("ARDEN_INTERACTIVE")
        if interactive is not None:
            overrides["interactive"] = interactive
        telemetry = _env_bool("ARDEN_TELEMETRY")
        if telemetry is not None:
            overrides["telemetry_enabled"] = telemetry
        return overrides
