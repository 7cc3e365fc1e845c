from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Diagnostic model: row/cell scoped validation errors and warnings.

Errors block a student from report generation; warnings only record that a
value was defaulted. Diagnostics are always returned as data, never raised.

row is the 1-based position of the student in the original grid (the column
number when the sheet was laid out one column per student). row=0 marks the
single global failure of a structurally unusable grid.
"""

__all__ = [
    "Severity",
    "DiagnosticCode",
    "Diagnostic",
    "GLOBAL_ROW",
]

GLOBAL_ROW = 0


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


class DiagnosticCode(Enum):
    """Classification of a diagnostic in UPPER_SNAKE form."""
    MISSING_COLUMN = "MISSING_COLUMN"
    EMPTY_REQUIRED_FIELD = "EMPTY_REQUIRED_FIELD"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    UNPARSED_DATE = "UNPARSED_DATE"
    REQUIRED_SUBJECT_BLANK = "REQUIRED_SUBJECT_BLANK"
    UNMAPPED_COMPONENT = "UNMAPPED_COMPONENT"
    COLUMN_NOT_FOUND = "COLUMN_NOT_FOUND"
    BLANK_TREATED_AS_ZERO = "BLANK_TREATED_AS_ZERO"
    ABSENT_TREATED_AS_ZERO = "ABSENT_TREATED_AS_ZERO"
    NON_NUMERIC_MARK = "NON_NUMERIC_MARK"
    NEGATIVE_MARK = "NEGATIVE_MARK"
    EXCEEDS_COMPONENT_MAX = "EXCEEDS_COMPONENT_MAX"
    SUBJECT_TOTAL_EXCEEDS_MAX = "SUBJECT_TOTAL_EXCEEDS_MAX"
    CHOICE_GROUP_VIOLATION = "CHOICE_GROUP_VIOLATION"
    STRUCTURAL_ERROR = "STRUCTURAL_ERROR"
    SHEET_NOT_FOUND = "SHEET_NOT_FOUND"


@dataclass(frozen=True)
class Diagnostic:
    """A single validation finding.

    Attributes:
        row: Student position in the original grid (0 = global)
        field: Identity key, subject key, "subject.component" or choice group id
        message: Human readable explanation
        code: DiagnosticCode classification
        severity: ERROR (blocking) or WARNING (informational)
        cell: A1 reference in the original grid for cell-scoped findings
    """
    row: int
    field: str
    message: str
    code: DiagnosticCode
    severity: Severity
    cell: str | None = None

    @staticmethod
    def error(row: int, field: str, message: str, code: DiagnosticCode, cell: str | None = None) -> Diagnostic:
        return Diagnostic(row=row, field=field, message=message, code=code, severity=Severity.ERROR, cell=cell)

    @staticmethod
    def warning(row: int, field: str, message: str, code: DiagnosticCode, cell: str | None = None) -> Diagnostic:
        return Diagnostic(row=row, field=field, message=message, code=code, severity=Severity.WARNING, cell=cell)

    @property
    def locus(self) -> str:
        """Short location string for display: 'row 4' or 'row 4 (D4)'."""
        if self.row == GLOBAL_ROW:
            return "file"
        if self.cell:
            return f"row {self.row} ({self.cell})"
        return f"row {self.row}"
