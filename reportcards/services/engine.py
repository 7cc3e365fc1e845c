from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from ..excel.grid import CanonicalRow, CanonicalTable, Orientation, RawGrid, StructuralError, normalize
from ..excel.headers import build_header_index, find_missing_headers, header_key
from ..models.cell_value import Absent, Blank, Invalid, classify_cell, parse_number
from ..models.diagnostic import Diagnostic, DiagnosticCode
from ..models.parse_result import ParseResult
from ..models.student_record import Aggregate, StudentRecord, SubjectScore
from ..models.template import FieldType, Grading, Subject, TemplateSchema, strftime_pattern
from .grading import division_for, grade_for, percentage_of, remark_for

"""Validation & computation engine.

parse(grid, schema, orientation) turns a raw mark-sheet grid into computed
StudentRecords plus the error and warning diagnostics found on the way.

Each canonical row goes through four phases exactly once:

A. identity extraction (missing identity columns abort subject processing)
B. subject selection (optional subjects with every component blank drop out)
C. component scoring of the selected subjects
D. choice-group checks and aggregation (total, percentage, grade, pass/fail,
   division)

Diagnostics for a row are accumulated, never short-circuited. A row with
blocking errors is still fully computed and emitted. The engine performs no
I/O and keeps no state between calls.
"""

__all__ = [
    "parse",
    "validate_table",
]

logger = logging.getLogger(__name__)

# (header, canonical column index) of a subject component
ComponentColumn = tuple[str | None, int | None]


def parse(
    grid: RawGrid,
    schema: TemplateSchema,
    orientation: Orientation = Orientation.ROWS,
    header_row: int | None = None,
) -> ParseResult:
    """Normalize, validate and compute one mark-sheet grid.

    Parameters
    ----------
    grid: raw cell grid as read from the sheet
    schema: template for the class the sheet belongs to
    orientation: ROWS (one row per student) or COLUMNS (one column per student)
    header_row: overrides schema.header_row for ROWS grids

    Returns
    -------
    ParseResult: records in original student order, plus errors and warnings.
        A structurally unusable grid yields one row-0 error and no records.
    """
    try:
        table = normalize(grid, orientation, header_row=header_row or schema.header_row)
    except StructuralError as e:
        logger.debug("structural failure template=%s: %s", schema.template_id, e)
        return ParseResult.global_failure(str(e))
    return validate_table(table, schema)


def validate_table(table: CanonicalTable, schema: TemplateSchema) -> ParseResult:
    header_index = build_header_index(table.headers)
    records: list[StudentRecord] = []
    errors: list[Diagnostic] = []
    warnings: list[Diagnostic] = []

    for row in table.rows:
        ctx = _RowContext(row, table)
        record = _process_row(ctx, header_index, schema)
        records.append(record)
        errors.extend(ctx.errors)
        warnings.extend(ctx.warnings)
        logger.debug(
            "row=%d selected=%s errors=%d warnings=%d",
            row.position,
            list(record.selected_subjects),
            len(ctx.errors),
            len(ctx.warnings),
        )

    return ParseResult(records=tuple(records), errors=tuple(errors), warnings=tuple(warnings))


class _RowContext:
    """Diagnostic accumulator for a single canonical row."""

    def __init__(self, row: CanonicalRow, table: CanonicalTable) -> None:
        self.row = row
        self.table = table
        self.errors: list[Diagnostic] = []
        self.warnings: list[Diagnostic] = []

    def _ref(self, column: int | None) -> str | None:
        return None if column is None else self.table.cell_ref(self.row, column)

    def error(self, field: str, message: str, code: DiagnosticCode, column: int | None = None) -> None:
        self.errors.append(Diagnostic.error(self.row.position, field, message, code, self._ref(column)))

    def warning(self, field: str, message: str, code: DiagnosticCode, column: int | None = None) -> None:
        self.warnings.append(Diagnostic.warning(self.row.position, field, message, code, self._ref(column)))


def _process_row(ctx: _RowContext, header_index: Mapping[str, int], schema: TemplateSchema) -> StudentRecord:
    identity, aborted = _extract_identity(ctx, header_index, schema)
    co_scholastic = _extract_co_scholastic(ctx, header_index, schema)

    if aborted:
        return StudentRecord(
            row_number=ctx.row.position,
            identity=identity,
            subject_scores={},
            selected_subjects=(),
            aggregate=Aggregate(total_obtained=0, total_max=0, percentage=0.0, grade=grade_for(0), passed=False),
            has_blocking_errors=True,
            co_scholastic=co_scholastic,
        )

    scores, selected, tally = _score_subjects(ctx, header_index, schema)
    _check_choice_groups(ctx, schema, tally)
    aggregate = _aggregate(scores, schema)

    return StudentRecord(
        row_number=ctx.row.position,
        identity=identity,
        subject_scores=scores,
        selected_subjects=tuple(selected),
        aggregate=aggregate,
        has_blocking_errors=bool(ctx.errors),
        co_scholastic=co_scholastic,
    )


# ── Phase A ──────────────────────────────────────────────────────────────


def _extract_identity(
    ctx: _RowContext, header_index: Mapping[str, int], schema: TemplateSchema
) -> tuple[dict[str, Any], bool]:
    """Read identity fields; returns (identity, aborted)."""
    missing = find_missing_headers(header_index, [f.header for f in schema.identity_fields.values()])
    if missing:
        listed = ", ".join(f'"{h}"' for h in missing)
        ctx.error("identity", f"Column(s) not found in headers: {listed}.", DiagnosticCode.MISSING_COLUMN)

    identity: dict[str, Any] = {}
    for key, fdef in schema.identity_fields.items():
        column = header_index.get(header_key(fdef.header))
        if column is None:
            continue
        value = ctx.row.cell(column).strip()

        if value == "":
            if fdef.required:
                ctx.error(key, f'"{fdef.label}" is empty.', DiagnosticCode.EMPTY_REQUIRED_FIELD, column)
            identity[key] = ""
            continue

        if fdef.field_type is FieldType.NUMBER:
            number = parse_number(value)
            if number is None:
                ctx.error(
                    key,
                    f'"{fdef.label}" should be a number but got "{value}".',
                    DiagnosticCode.TYPE_MISMATCH,
                    column,
                )
                identity[key] = value
            else:
                identity[key] = number
        elif fdef.field_type is FieldType.DATE:
            identity[key] = _coerce_date(ctx, key, fdef.label, value, fdef.date_format, column)
        else:
            identity[key] = value

    return identity, bool(missing)


def _coerce_date(
    ctx: _RowContext, key: str, label: str, value: str, date_format: str | None, column: int
) -> str:
    """Keep dates in the declared format; re-render ISO dates coming from date cells."""
    if date_format is None:
        return value
    pattern = strftime_pattern(date_format)
    try:
        datetime.strptime(value, pattern)
        return value
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).strftime(pattern)
    except ValueError:
        ctx.warning(
            key,
            f'"{label}" value "{value}" does not match {date_format}; kept as written.',
            DiagnosticCode.UNPARSED_DATE,
            column,
        )
        return value


def _extract_co_scholastic(
    ctx: _RowContext, header_index: Mapping[str, int], schema: TemplateSchema
) -> dict[str, str | None]:
    values: dict[str, str | None] = {}
    for key, fdef in schema.co_scholastic_fields.items():
        column = header_index.get(header_key(fdef.header))
        text = ctx.row.cell(column).strip()
        values[key] = text or None
    return values


# ── Phase B / C ──────────────────────────────────────────────────────────


def _component_columns(
    schema: TemplateSchema, header_index: Mapping[str, int], subject: Subject
) -> dict[str, ComponentColumn]:
    columns: dict[str, ComponentColumn] = {}
    for component in subject.components:
        header = schema.header_for(subject.key, component)
        index = header_index.get(header_key(header)) if header else None
        columns[component] = (header, index)
    return columns


def _score_subjects(
    ctx: _RowContext, header_index: Mapping[str, int], schema: TemplateSchema
) -> tuple[dict[str, SubjectScore], list[str], Counter[str]]:
    scores: dict[str, SubjectScore] = {}
    selected: list[str] = []
    tally: Counter[str] = Counter()

    for subject in schema.subjects:
        columns = _component_columns(schema, header_index, subject)
        # unmapped / unresolved / out-of-range components read as blank here
        all_blank = all(
            isinstance(classify_cell(ctx.row.cell(index)), Blank) for _, index in columns.values()
        )

        if all_blank:
            if subject.optional:
                continue
            ctx.error(
                subject.key,
                f"{subject.label}: every component is blank for a required subject.",
                DiagnosticCode.REQUIRED_SUBJECT_BLANK,
            )
            selected.append(subject.key)
            continue

        selected.append(subject.key)
        if subject.choice_group:
            tally[subject.choice_group] += 1
        scores[subject.key] = _score_subject(ctx, subject, columns, schema.grading)

    return scores, selected, tally


def _score_subject(
    ctx: _RowContext, subject: Subject, columns: Mapping[str, ComponentColumn], grading: Grading
) -> SubjectScore:
    components: dict[str, int | float | None] = {}
    total: int | float = 0

    for component in subject.components:
        header, column = columns[component]
        field = f"{subject.key}.{component}"

        if header is None:
            ctx.warning(
                field,
                f"No column header mapped for {subject.label} -> {component}.",
                DiagnosticCode.UNMAPPED_COMPONENT,
            )
            components[component] = None
            continue
        if column is None:
            ctx.error(field, f'Column "{header}" not found in headers.', DiagnosticCode.COLUMN_NOT_FOUND)
            components[component] = None
            continue

        value = classify_cell(ctx.row.cell(column))
        if isinstance(value, Blank):
            ctx.warning(
                field,
                f"{subject.label} {component} is blank; treated as 0.",
                DiagnosticCode.BLANK_TREATED_AS_ZERO,
                column,
            )
            mark: int | float = 0
        elif isinstance(value, Absent):
            ctx.warning(
                field,
                f'{subject.label} {component} marked absent ("{value.raw}"); treated as 0.',
                DiagnosticCode.ABSENT_TREATED_AS_ZERO,
                column,
            )
            mark = 0
        elif isinstance(value, Invalid):
            ctx.error(
                field,
                f'{subject.label} {component}: expected number, got "{value.raw}".',
                DiagnosticCode.NON_NUMERIC_MARK,
                column,
            )
            components[component] = None
            continue
        else:
            mark = value.value
            maximum = subject.max_for(component)
            if mark < 0:
                ctx.error(
                    field,
                    f"{subject.label} {component}: marks cannot be negative ({mark}).",
                    DiagnosticCode.NEGATIVE_MARK,
                    column,
                )
            elif mark > maximum:
                ctx.error(
                    field,
                    f"{subject.label} {component}: {mark} exceeds component max {maximum:g}.",
                    DiagnosticCode.EXCEEDS_COMPONENT_MAX,
                    column,
                )

        # out-of-range marks are reported, not clamped
        components[component] = mark
        total += mark

    if total > subject.max_marks:
        ctx.error(
            subject.key,
            f"{subject.label}: total {total} exceeds max marks {subject.max_marks:g}.",
            DiagnosticCode.SUBJECT_TOTAL_EXCEEDS_MAX,
        )

    percentage = percentage_of(total, subject.max_marks)
    return SubjectScore(
        components=components,
        total=total,
        max=subject.max_marks,
        percentage=percentage,
        passed=percentage >= grading.pass_percent,
        grade=grade_for(percentage),
        remark=remark_for(percentage),
    )


# ── Phase D ──────────────────────────────────────────────────────────────


def _check_choice_groups(ctx: _RowContext, schema: TemplateSchema, tally: Counter[str]) -> None:
    for group_id, group in schema.choice_groups.items():
        count = tally.get(group_id, 0)
        if group.min_selected <= count <= group.max_selected:
            continue
        if group.min_selected == group.max_selected:
            expected = f"exactly {group.min_selected}"
        else:
            expected = f"between {group.min_selected} and {group.max_selected}"
        ctx.error(
            group_id,
            f"{group.label}: {count} subject(s) selected, expected {expected}.",
            DiagnosticCode.CHOICE_GROUP_VIOLATION,
        )


def _aggregate(scores: Mapping[str, SubjectScore], schema: TemplateSchema) -> Aggregate:
    total_obtained = sum(s.total for s in scores.values())
    total_max = sum(s.max for s in scores.values())
    percentage = percentage_of(total_obtained, total_max)
    failed = tuple(schema.subject(key).label for key, s in scores.items() if not s.passed)
    passed = not failed
    return Aggregate(
        total_obtained=total_obtained,
        total_max=total_max,
        percentage=percentage,
        grade=grade_for(percentage),
        passed=passed,
        division=division_for(percentage, schema.grading.divisions) if passed else None,
        failed_subject_labels=failed,
    )
