from __future__ import annotations

from pathlib import Path
from zipfile import BadZipFile

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

"""Mark-sheet reader: workbook / CSV file -> raw string grid.

Every cell is returned as text. Empty cells become "" and pandas' default NA
string conversion is disabled so that values like "NA" or "AB" survive as
typed. Formulas are not evaluated; openpyxl hands back cached cell values.

Workbooks are read with openpyxl (.xlsx / .xlsm). Legacy binary .xls files
need xlrd, which is not a dependency; they fail like any other
unreadable file, with WorkbookReadError.
"""

__all__ = [
    "WorkbookReadError",
    "SheetNotFoundError",
    "get_sheet_names",
    "read_grid",
]

CSV_SUFFIXES = {".csv"}


class WorkbookReadError(Exception):
    """Raised when the file cannot be opened or decoded."""


class SheetNotFoundError(Exception):
    """Raised when the requested sheet is not part of the workbook."""

    def __init__(self, sheet_name: str, available: list[str]) -> None:
        self.sheet_name = sheet_name
        self.available = available
        super().__init__(
            f'Sheet "{sheet_name}" not found. Available sheets: {", ".join(available)}'
        )


def _is_csv(path: Path) -> bool:
    return path.suffix.lower() in CSV_SUFFIXES


def get_sheet_names(path: Path) -> list[str]:
    """Sheet names of a workbook; a CSV file has one unnamed sheet ("")."""
    if _is_csv(path):
        return [""]
    try:
        with pd.ExcelFile(path) as xls:
            return [str(n) for n in xls.sheet_names]
    # ImportError: pandas picked an engine that is not installed (.xls -> xlrd)
    except (OSError, ValueError, ImportError, BadZipFile, InvalidFileException) as e:
        raise WorkbookReadError(f"Failed to read Excel file: {e}") from e


def _resolve_sheet(requested: str, available: list[str]) -> str:
    if requested in available:
        return requested
    lowered = {name.lower(): name for name in available}
    if requested.lower() in lowered:
        return lowered[requested.lower()]
    raise SheetNotFoundError(requested, available)


def _cell_text(value: object) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    # numeric columns with gaps come back as float64
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _frame_to_grid(df: pd.DataFrame) -> list[list[str]]:
    return [[_cell_text(v) for v in row] for row in df.itertuples(index=False, name=None)]


def read_grid(path: Path, sheet_name: str | None = None) -> list[list[str]]:
    """Read one sheet as a list of rows of cell strings.

    Parameters
    ----------
    path: .xlsx / .xlsm / .csv file
    sheet_name: sheet to read (case-insensitive fallback); None = first sheet.
        Ignored for CSV input.
    """
    if not path.exists():
        raise WorkbookReadError(f"file not found: {path}")
    try:
        if _is_csv(path):
            df = pd.read_csv(
                path, header=None, dtype=str, keep_default_na=False, skip_blank_lines=False
            )
            return _frame_to_grid(df)

        with pd.ExcelFile(path) as xls:
            available = [str(n) for n in xls.sheet_names]
            target = available[0] if sheet_name is None else _resolve_sheet(sheet_name, available)
            df = xls.parse(target, header=None, keep_default_na=False)
    except SheetNotFoundError:
        raise
    except pd.errors.EmptyDataError:
        return []
    except (OSError, ValueError, ImportError, BadZipFile, InvalidFileException, pd.errors.ParserError) as e:
        raise WorkbookReadError(f"Failed to read file {path.name}: {e}") from e
    return _frame_to_grid(df)
