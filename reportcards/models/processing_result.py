from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

"""Batch processing result models.

FileOutcome describes one processed mark-sheet file; BatchResult aggregates a
whole CLI run and feeds the SUMMARY line.
"""

__all__ = [
    "FileStatus",
    "FileOutcome",
    "BatchResult",
]


class FileStatus(Enum):
    """Outcome of one file.

    - SUCCESS: every student row validated without blocking errors
    - PARTIAL: parsed, but at least one student has blocking errors
    - FAILED: nothing usable (unreadable file, missing sheet, no student data)
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class FileOutcome:
    file_name: str
    status: FileStatus
    students: int = 0
    valid_students: int = 0
    error_count: int = 0
    warning_count: int = 0
    elapsed_seconds: float = 0.0
    error: str | None = None  # failure reason for FAILED files

    @property
    def blocked_students(self) -> int:
        return self.students - self.valid_students


@dataclass(frozen=True)
class BatchResult:
    success_files: int
    partial_files: int
    failed_files: int
    total_students: int
    valid_students: int
    error_count: int
    warning_count: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_outcomes: list[FileOutcome] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.partial_files + self.failed_files

    @property
    def blocked_students(self) -> int:
        return self.total_students - self.valid_students
