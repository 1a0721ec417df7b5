"""Local log importers for supported agents."""

from .amp import sync_amp_threads
from .claude import sync_claude_sessions
from .summary import ImportSummary

__all__ = ["ImportSummary", "sync_amp_threads", "sync_claude_sessions"]
