"""Run summary shared by the local log importers."""

from dataclasses import dataclass, field


@dataclass
class ImportSummary:
    sources_found: int = 0
    sources_synced: int = 0
    sources_skipped: int = 0
    sources_failed: int = 0
    events_sent: int = 0
    events_rejected: int = 0
    errors: list[dict] = field(default_factory=list)

    def record_failure(self, source: str, error: str) -> None:
        self.sources_failed += 1
        self.errors.append({"source": source, "error": error})
