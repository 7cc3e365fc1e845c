from __future__ import annotations

import math
import re
from dataclasses import dataclass

"""Tagged cell values for mark cells.

Raw mark cells are loosely typed strings. Each one is classified exactly once
into Number | Blank | Absent | Invalid before scoring logic looks at it.
"""

__all__ = [
    "ABSENT_MARKER",
    "Number",
    "Blank",
    "Absent",
    "Invalid",
    "CellValue",
    "classify_cell",
    "parse_number",
]

ABSENT_MARKER = "AB"

# ASCII decimal only; float() alone would also take "1_0" or non-ASCII digits
_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$", re.ASCII)


@dataclass(frozen=True)
class Number:
    value: int | float


@dataclass(frozen=True)
class Blank:
    pass


@dataclass(frozen=True)
class Absent:
    raw: str = ABSENT_MARKER


@dataclass(frozen=True)
class Invalid:
    raw: str


CellValue = Number | Blank | Absent | Invalid

BLANK = Blank()


def parse_number(text: str) -> int | float | None:
    """Parse a trimmed cell string as a finite number.

    Integral values come back as int so that "12" and "12.0" both read as 12.
    Returns None for anything that is not a finite decimal number.
    """
    stripped = text.strip()
    if not _DECIMAL_RE.match(stripped):
        return None
    value = float(stripped)
    if not math.isfinite(value):
        return None
    if value.is_integer():
        return int(value)
    return value


def classify_cell(raw: object) -> CellValue:
    if raw is None:
        return BLANK
    text = str(raw).strip()
    if text == "":
        return BLANK
    if text.upper() == ABSENT_MARKER:
        return Absent(raw=text)
    number = parse_number(text)
    if number is None:
        return Invalid(raw=text)
    return Number(value=number)
