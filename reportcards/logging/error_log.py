from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.diagnostic import Diagnostic
from ..models.log_entry import DiagnosticLogEntry

"""Diagnostic log buffering.

- JSON Lines with a fixed key set (contracts/diagnostic_log_schema.json)
- One `diagnostics-YYYYMMDD-HHMMSS.log` (UTC) per run, created on first flush
- Entries are buffered and written in one go at flush time
"""

__all__ = [
    "DiagnosticLogEntry",
    "DiagnosticLogBuffer",
    "DEFAULT_LOG_DIR",
]

DEFAULT_LOG_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class DiagnosticLogBuffer:
    """In-memory buffer of diagnostic log entries. flush() appends JSON Lines.

    Not thread safe; files are processed serially.
    """

    def __init__(self, log_dir: Path | None = None) -> None:
        self.log_dir = log_dir or DEFAULT_LOG_DIR
        self._entries: list[DiagnosticLogEntry] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.log_dir / f"diagnostics-{stamp}.log"
        return self._file_path

    @property
    def entries(self) -> list[DiagnosticLogEntry]:
        return list(self._entries)

    def append(self, entry: DiagnosticLogEntry) -> None:
        self._entries.append(entry)

    def extend(self, file: str, sheet: str, diagnostics: Iterable[Diagnostic]) -> None:
        """Buffer engine diagnostics of one file/sheet."""
        for diagnostic in diagnostics:
            self._entries.append(DiagnosticLogEntry.create(file, sheet, diagnostic))

    def __len__(self) -> int:
        return len(self._entries)

    def flush(self) -> Path | None:
        """Write buffered entries; returns the log path, or None when nothing was buffered."""
        if not self._entries:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for entry in self._entries:
                f.write(entry.to_json_line() + "\n")
        self._entries.clear()
        return fp
