from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

"""LabFile domain model and FileStatus enum.

Tracks one lab-data file through the batch lifecycle:
pending -> processing -> (success | failed).
"""


class FileStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class LabFile:
    """Processing context and outcome for a single lab-data file."""
    path: Path
    name: str
    groups: list[Any]  # DerivedGroup per recognized test
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: FileStatus = FileStatus.PENDING
    total_fields: int = 0
    sections_seen: int = 0
    skipped_sections: int = 0
    persisted_records: int = 0
    error: str | None = None
