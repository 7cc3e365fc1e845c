from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from openpyxl.utils.cell import get_column_letter

"""Grid normalizer: raw 2-D cell grid -> canonical row-per-student table.

Two source layouts are supported:

- ROWS: one row per student. Line `header_row` holds the field names, lines
  below it are students, lines above it (title rows) are ignored.
- COLUMNS: one column per student. Column 0 is the field-name axis, every
  other column is one student.

Fully blank students (rows or columns) are dropped silently. Every canonical
row remembers its 1-based position in the original grid so diagnostics can
point at the cell the user actually sees.
"""

__all__ = [
    "Orientation",
    "StructuralError",
    "CanonicalRow",
    "CanonicalTable",
    "normalize",
]

RawGrid = Sequence[Sequence[object]]


class Orientation(Enum):
    ROWS = "rows"
    COLUMNS = "columns"


class StructuralError(Exception):
    """Raised when the grid holds no usable header or no student data at all."""


@dataclass(frozen=True)
class CanonicalRow:
    position: int  # 1-based row (ROWS) or column (COLUMNS) number in the original grid
    values: tuple[str, ...]

    def cell(self, index: int | None) -> str:
        """Raw cell text at a canonical column index; '' when out of range."""
        if index is None or index < 0 or index >= len(self.values):
            return ""
        return self.values[index]


@dataclass(frozen=True)
class CanonicalTable:
    headers: tuple[str, ...]
    rows: tuple[CanonicalRow, ...]
    orientation: Orientation = Orientation.ROWS

    def cell_ref(self, row: CanonicalRow, column_index: int) -> str:
        """A1 reference of a canonical cell in the original grid."""
        if self.orientation is Orientation.COLUMNS:
            return f"{get_column_letter(row.position)}{column_index + 1}"
        return f"{get_column_letter(column_index + 1)}{row.position}"


def _text(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def _is_blank(values: Sequence[str]) -> bool:
    return all(v.strip() == "" for v in values)


def normalize(grid: RawGrid, orientation: Orientation = Orientation.ROWS, header_row: int = 1) -> CanonicalTable:
    """Normalize a raw grid into a canonical table.

    Parameters
    ----------
    grid: rows x columns of raw cell values (stringified here)
    orientation: ROWS (one row per student) or COLUMNS (one column per student)
    header_row: 1-based header line for ROWS; ignored for COLUMNS

    Raises
    ------
    StructuralError: no header / field names, fewer than 2 named columns
        (ROWS), or no student data present
    """
    lines = [[_text(v) for v in line] for line in grid]
    if orientation is Orientation.COLUMNS:
        return _normalize_columns(lines)
    return _normalize_rows(lines, header_row)


def _normalize_rows(lines: list[list[str]], header_row: int) -> CanonicalTable:
    if header_row < 1:
        raise StructuralError(f"header row must be >= 1 (got {header_row})")
    if len(lines) < header_row or _is_blank(lines[header_row - 1]):
        raise StructuralError(f"header row {header_row} is missing or empty")

    width = max(len(line) for line in lines[header_row - 1:])
    headers = [h.strip() for h in lines[header_row - 1]]
    headers += [""] * (width - len(headers))
    if sum(1 for h in headers if h) < 2:
        raise StructuralError(f"header row {header_row} names fewer than 2 columns")

    rows: list[CanonicalRow] = []
    for offset, line in enumerate(lines[header_row:]):
        if _is_blank(line):
            continue
        padded = line + [""] * (width - len(line))
        rows.append(CanonicalRow(position=header_row + offset + 1, values=tuple(padded)))

    if not rows:
        raise StructuralError("No data rows found after the header row.")
    return CanonicalTable(headers=tuple(headers), rows=tuple(rows), orientation=Orientation.ROWS)


def _normalize_columns(lines: list[list[str]]) -> CanonicalTable:
    if not lines:
        raise StructuralError("grid is empty")
    width = max(len(line) for line in lines)
    headers = [line[0].strip() if line else "" for line in lines]
    if _is_blank(headers):
        raise StructuralError("field-name column (column A) is empty")

    rows: list[CanonicalRow] = []
    for col in range(1, width):
        values = [line[col] if col < len(line) else "" for line in lines]
        if _is_blank(values):
            continue
        rows.append(CanonicalRow(position=col + 1, values=tuple(values)))

    if not rows:
        raise StructuralError("No student columns found next to the field-name column.")
    return CanonicalTable(headers=tuple(headers), rows=tuple(rows), orientation=Orientation.COLUMNS)
