"""Detect AI coding agents installed on this machine."""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

VERSION_TIMEOUT_SECONDS = 5.0

# Display name -> executable
KNOWN_AGENT_COMMANDS = {
    "Claude Code": "claude",
    "Amp": "amp",
}


@dataclass
class AgentDetection:
    present: bool
    bin: Optional[str] = None
    version: Optional[str] = None


def find_on_path(cmd: str) -> Optional[str]:
    """Full path of an executable on PATH, or None."""
    return shutil.which(cmd)


def get_version(
    cmd_path: str,
    args: Sequence[str] = ("--version",),
    timeout: float = VERSION_TIMEOUT_SECONDS,
) -> Optional[str]:
    """Run ``cmd_path --version`` and return its trimmed stdout.

    Returns None if the command fails, exits non-zero or times out.
    """
    try:
        completed = subprocess.run(
            [cmd_path, *args],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"Version probe failed for {cmd_path}: {e}")
        return None

    if completed.returncode != 0:
        return None
    return completed.stdout.strip() or None


def detect_agent(cmd: str) -> AgentDetection:
    bin_path = find_on_path(cmd)
    if not bin_path:
        return AgentDetection(present=False)
    return AgentDetection(present=True, bin=bin_path, version=get_version(bin_path))


def detect_claude() -> AgentDetection:
    return detect_agent(KNOWN_AGENT_COMMANDS["Claude Code"])


def detect_amp() -> AgentDetection:
    return detect_agent(KNOWN_AGENT_COMMANDS["Amp"])


def detect_all() -> dict[str, AgentDetection]:
    """Detection results for every known agent, keyed by display name."""
    return {
        "Claude Code": detect_claude(),
        "Amp": detect_amp(),
    }
