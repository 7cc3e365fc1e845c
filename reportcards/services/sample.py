from __future__ import annotations

import logging
import math
from datetime import date
from pathlib import Path

import pandas as pd
from openpyxl.utils.cell import get_column_letter

from ..excel.grid import Orientation
from ..models.template import FieldType, IdentityField, Subject, TemplateSchema, strftime_pattern

"""Sample template exporter.

Builds a mark-sheet grid matching a template: the header line followed by a
few sample students whose marks validate cleanly against the same template.
Only the template is consulted; the engine is not involved.
"""

__all__ = [
    "build_sample_headers",
    "build_sample_grid",
    "write_sample_workbook",
]

logger = logging.getLogger(__name__)

MIN_COLUMN_WIDTH = 12

_SAMPLE_PEOPLE = (
    {"name": "Aarav Sharma", "father_name": "Rahul Sharma", "mother_name": "Priya Sharma", "dob": date(2012, 5, 15)},
    {"name": "Isha Verma", "father_name": "Anil Verma", "mother_name": "Kavita Verma", "dob": date(2012, 8, 22)},
    {"name": "Kabir Singh", "father_name": "Harpreet Singh", "mother_name": "Simran Kaur", "dob": date(2011, 12, 3)},
)
_SAMPLE_DEFAULTS = {
    "class": "V",
    "section": "A",
    "session": "2024-25",
    "attend_present": 182,
    "attend_total": 200,
}
# share of each component max written for the n-th sample student
_MARK_RATIOS = (0.85, 0.72, 0.64)


def build_sample_headers(schema: TemplateSchema) -> list[str]:
    """Identity, co-scholastic and mapped component headers in template order."""
    headers = [f.header for f in schema.identity_fields.values()]
    headers.extend(f.header for f in schema.co_scholastic_fields.values())
    for subject in schema.subjects:
        for component in subject.components:
            header = schema.header_for(subject.key, component)
            if header:
                headers.append(header)
    return headers


def _identity_value(key: str, fdef: IdentityField, n: int) -> object:
    person = _SAMPLE_PEOPLE[(n - 1) % len(_SAMPLE_PEOPLE)]
    if fdef.field_type is FieldType.DATE:
        dob = person.get(key, date(2012, 1, 1))
        pattern = strftime_pattern(fdef.date_format) if fdef.date_format else "%Y-%m-%d"
        return dob.strftime(pattern)
    if key in person:
        return person[key]
    if key in _SAMPLE_DEFAULTS:
        return _SAMPLE_DEFAULTS[key]
    if key == "sr_no":
        return n
    if key == "roll_no":
        return 100 + n
    if fdef.field_type is FieldType.NUMBER:
        return n
    return f"{fdef.label} {n}"


def _filled_subjects(schema: TemplateSchema) -> set[str]:
    """Required subjects plus the first min_selected members of every choice group."""
    filled = {s.key for s in schema.subjects if not s.optional}
    for group_id, group in schema.choice_groups.items():
        members = [s.key for s in schema.subjects if s.choice_group == group_id]
        filled.update(members[: group.min_selected])
    return filled


def _component_marks(subject: Subject, ratio: float) -> dict[str, int]:
    component_total = sum(subject.max_for(c) for c in subject.components)
    # keep the subject total within max_marks when component maxima add up to more
    scale = min(1.0, subject.max_marks / component_total) if component_total else 0.0
    return {c: math.floor(subject.max_for(c) * ratio * scale) for c in subject.components}


def _sample_student(schema: TemplateSchema, n: int, filled: set[str]) -> list[object]:
    values: list[object] = [_identity_value(k, f, n) for k, f in schema.identity_fields.items()]
    values.extend("A" for _ in schema.co_scholastic_fields)
    ratio = _MARK_RATIOS[(n - 1) % len(_MARK_RATIOS)]
    for subject in schema.subjects:
        marks = _component_marks(subject, ratio) if subject.key in filled else {}
        for component in subject.components:
            if schema.header_for(subject.key, component):
                values.append(marks.get(component, ""))
    return values


def build_sample_grid(
    schema: TemplateSchema,
    orientation: Orientation = Orientation.ROWS,
    sample_students: int = 2,
) -> list[list[object]]:
    """Header line plus sample students, laid out in the requested orientation."""
    filled = _filled_subjects(schema)
    rows: list[list[object]] = [list(build_sample_headers(schema))]
    rows.extend(_sample_student(schema, n, filled) for n in range(1, sample_students + 1))
    if orientation is Orientation.COLUMNS:
        return [list(col) for col in zip(*rows)]
    return rows


def _column_widths(grid: list[list[object]]) -> list[int]:
    widths = [MIN_COLUMN_WIDTH] * max((len(r) for r in grid), default=0)
    for row in grid:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], len(str(value)) + 2)
    return widths


def write_sample_workbook(
    schema: TemplateSchema,
    path: Path,
    orientation: Orientation = Orientation.ROWS,
    sample_students: int = 2,
) -> Path:
    """Write the sample grid to an .xlsx file on the template's sheet."""
    grid = build_sample_grid(schema, orientation, sample_students)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(grid).to_excel(writer, sheet_name=schema.sheet_name, header=False, index=False)
        ws = writer.sheets[schema.sheet_name]
        for i, width in enumerate(_column_widths(grid), start=1):
            ws.column_dimensions[get_column_letter(i)].width = width
    logger.info("sample template written: %s (template=%s, %s)", path, schema.template_id, orientation.value)
    return path
