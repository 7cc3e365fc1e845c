from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

from .diagnostic import Diagnostic

"""DiagnosticLogEntry: one JSON Lines record of the diagnostic log.

The key set is fixed by contracts/diagnostic_log_schema.json; no extra keys
are ever written. row=0 marks file-level failures.
"""

__all__ = [
    "DiagnosticLogEntry",
]


@dataclass(frozen=True)
class DiagnosticLogEntry:
    """Structured diagnostic record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Mark-sheet filename being processed
        sheet: Sheet name within the file ("" for CSV input)
        row: Student position in the original grid, 0 for file-level failures
        cell: A1 reference for cell-scoped findings, else None
        severity: "error" or "warning"
        code: DiagnosticCode value in UPPER_SNAKE_CASE
        field: Field, subject or choice group the finding is about
        message: Human readable explanation
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    cell: str | None
    severity: str
    code: str
    field: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, diagnostic: Diagnostic) -> DiagnosticLogEntry:
        """Wrap an engine diagnostic with file context and the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return DiagnosticLogEntry(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=diagnostic.row,
            cell=diagnostic.cell,
            severity=diagnostic.severity.value,
            code=diagnostic.code.value,
            field=diagnostic.field,
            message=diagnostic.message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
