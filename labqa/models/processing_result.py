from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models for batch ingestion.

Aggregates per-file statistics into the values rendered on the SUMMARY line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file statistics (helper for ProcessingResult)."""
    file_name: str
    status: str  # success/failed
    parsed_fields: int
    sections: int
    skipped_sections: int
    elapsed_seconds: float
    persisted_records: int = 0
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    success_files: int
    failed_files: int
    total_fields: int
    total_sections: int
    skipped_sections: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
