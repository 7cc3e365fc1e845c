from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ..excel.grid import Orientation
from ..excel.reader import CSV_SUFFIXES, SheetNotFoundError, WorkbookReadError, read_grid
from ..logging.error_log import DiagnosticLogBuffer
from ..models.diagnostic import DiagnosticCode
from ..models.parse_result import ParseResult
from ..models.processing_result import BatchResult, FileOutcome, FileStatus
from ..models.template import TemplateSchema
from .engine import parse
from .progress import ProgressTracker

"""Mark-sheet processing orchestration.

process_file() reads one workbook / CSV, runs the engine on the template's
sheet and classifies the outcome (success / partial / failed). Reader
failures become the single row-0 error the engine uses for structural
problems, so callers see one shape of result either way.

process_all() runs a batch serially with a tqdm progress bar, buffers every
diagnostic into the JSON Lines log and aggregates a BatchResult.
"""

__all__ = [
    "ProcessingError",
    "ParsedFile",
    "process_file",
    "process_all",
    "check_input_paths",
]

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Fatal problem that prevents a batch from running at all."""


@dataclass(frozen=True)
class ParsedFile:
    path: Path
    sheet: str
    result: ParseResult
    outcome: FileOutcome


def _classify(result: ParseResult) -> FileStatus:
    if result.is_structural_failure:
        return FileStatus.FAILED
    if result.blocked_records:
        return FileStatus.PARTIAL
    return FileStatus.SUCCESS


def _target_sheet(path: Path, schema: TemplateSchema, sheet_name: str | None) -> str:
    if path.suffix.lower() in CSV_SUFFIXES:
        return ""
    return sheet_name or schema.sheet_name


def process_file(
    path: Path,
    schema: TemplateSchema,
    orientation: Orientation = Orientation.ROWS,
    sheet_name: str | None = None,
    error_log: DiagnosticLogBuffer | None = None,
) -> ParsedFile:
    """Read and validate one mark-sheet file.

    Parameters
    ----------
    path: .xlsx / .xls / .csv mark-sheet
    schema: class template
    orientation: ROWS or COLUMNS source layout
    sheet_name: sheet override; defaults to schema.sheet_name
    error_log: buffer receiving every diagnostic of the file (optional)
    """
    start = datetime.now(UTC)
    sheet = _target_sheet(path, schema, sheet_name)

    try:
        grid = read_grid(path, sheet or None)
    except SheetNotFoundError as e:
        logger.error("%s: %s", path.name, e)
        result = ParseResult.global_failure(str(e), code=DiagnosticCode.SHEET_NOT_FOUND, field="sheet")
    except WorkbookReadError as e:
        logger.error("%s: %s", path.name, e)
        result = ParseResult.global_failure(str(e), field="file")
    else:
        result = parse(grid, schema, orientation)
        if result.is_structural_failure:
            logger.error("%s: %s", path.name, result.errors[0].message)

    elapsed = (datetime.now(UTC) - start).total_seconds()
    status = _classify(result)
    outcome = FileOutcome(
        file_name=path.name,
        status=status,
        students=len(result.records),
        valid_students=len(result.valid_records),
        error_count=len(result.errors),
        warning_count=len(result.warnings),
        elapsed_seconds=elapsed,
        error=result.errors[0].message if status is FileStatus.FAILED else None,
    )

    if error_log is not None:
        error_log.extend(path.name, sheet, (*result.errors, *result.warnings))

    logger.info(
        "%s: status=%s students=%d valid=%d errors=%d warnings=%d",
        path.name,
        status.value,
        outcome.students,
        outcome.valid_students,
        outcome.error_count,
        outcome.warning_count,
    )
    return ParsedFile(path=path, sheet=sheet, result=result, outcome=outcome)


def check_input_paths(paths: Sequence[Path]) -> None:
    """Raises ProcessingError unless every path is an existing file."""
    if not paths:
        raise ProcessingError("no input files given")
    for p in paths:
        if not p.exists():
            raise ProcessingError(f"File not found: {p}")
        if not p.is_file():
            raise ProcessingError(f"Path is not a file: {p}")


def process_all(
    paths: Sequence[Path],
    schema: TemplateSchema,
    orientation: Orientation = Orientation.ROWS,
    sheet_name: str | None = None,
    error_log: DiagnosticLogBuffer | None = None,
) -> tuple[BatchResult, list[ParsedFile]]:
    """Process a batch of mark-sheets serially.

    Returns the aggregated BatchResult and the per-file parse results in
    input order. The diagnostic log is flushed once at the end.

    Raises
    ------
    ProcessingError: an input path is missing or not a file
    """
    check_input_paths(paths)
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else DiagnosticLogBuffer()

    parsed: list[ParsedFile] = []
    counts = {status: 0 for status in FileStatus}
    students = valid = 0

    with ProgressTracker(len(paths), description="Parsing mark-sheets") as progress:
        for path in paths:
            progress.start_file(path)
            item = process_file(path, schema, orientation, sheet_name, error_log)
            parsed.append(item)

            counts[item.outcome.status] += 1
            students += item.outcome.students
            valid += item.outcome.valid_students
            progress.set_postfix(students=students, blocked=students - valid)
            progress.finish_file()

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning("failed to write diagnostic log: %s", e)
    else:
        if log_path is not None:
            logger.info("diagnostic log: %s", log_path)

    end_time = datetime.now(UTC)
    outcomes = [p.outcome for p in parsed]
    result = BatchResult(
        success_files=counts[FileStatus.SUCCESS],
        partial_files=counts[FileStatus.PARTIAL],
        failed_files=counts[FileStatus.FAILED],
        total_students=students,
        valid_students=valid,
        error_count=sum(o.error_count for o in outcomes),
        warning_count=sum(o.warning_count for o in outcomes),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_outcomes=outcomes,
    )
    return result, parsed
