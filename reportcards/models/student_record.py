from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Computed student result records.

A StudentRecord is built once per canonical data row by the engine and is
immutable afterwards. The presentation layer reads identity, subject_scores
and aggregate; it filters on has_blocking_errors and never looks at
diagnostics.
"""

__all__ = [
    "SubjectScore",
    "Aggregate",
    "StudentRecord",
]


@dataclass(frozen=True)
class SubjectScore:
    """Scores of one selected subject for one student."""
    components: dict[str, int | float | None]  # component -> value (None = not scored)
    total: int | float
    max: float
    percentage: float  # 2-decimal rounding
    passed: bool  # percentage >= grading.pass_percent
    grade: str
    remark: str


@dataclass(frozen=True)
class Aggregate:
    total_obtained: int | float
    total_max: float
    percentage: float
    grade: str
    passed: bool
    division: str | None = None
    failed_subject_labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class StudentRecord:
    """Logical result of one student row.

    row_number is the 1-based position in the original grid: the sheet row
    number for row-per-student sheets, the column number for
    column-per-student sheets.
    """
    row_number: int
    identity: dict[str, Any]
    subject_scores: dict[str, SubjectScore]
    selected_subjects: tuple[str, ...]
    aggregate: Aggregate
    has_blocking_errors: bool = False
    co_scholastic: dict[str, str | None] = field(default_factory=dict)
