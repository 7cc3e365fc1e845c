from __future__ import annotations

from dataclasses import dataclass

from .diagnostic import GLOBAL_ROW, Diagnostic, DiagnosticCode
from .student_record import StudentRecord

"""ParseResult: output of one engine run over one grid."""

__all__ = [
    "ParseResult",
]


@dataclass(frozen=True)
class ParseResult:
    records: tuple[StudentRecord, ...]
    errors: tuple[Diagnostic, ...]
    warnings: tuple[Diagnostic, ...]

    @staticmethod
    def global_failure(message: str, code: DiagnosticCode = DiagnosticCode.STRUCTURAL_ERROR, field: str = "data") -> ParseResult:
        """Single top-level error with row 0 and no records."""
        return ParseResult(
            records=(),
            errors=(Diagnostic.error(GLOBAL_ROW, field, message, code),),
            warnings=(),
        )

    @property
    def is_structural_failure(self) -> bool:
        return not self.records and any(e.row == GLOBAL_ROW for e in self.errors)

    @property
    def valid_records(self) -> tuple[StudentRecord, ...]:
        return tuple(r for r in self.records if not r.has_blocking_errors)

    @property
    def blocked_records(self) -> tuple[StudentRecord, ...]:
        return tuple(r for r in self.records if r.has_blocking_errors)
