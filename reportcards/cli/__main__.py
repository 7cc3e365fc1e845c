from __future__ import annotations

import argparse
import dataclasses
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from reportcards.config.loader import (
    ConfigError,
    check_schema_invariants,
    get_template,
    list_templates,
    load_custom_subjects,
    load_template,
)
from reportcards.excel.grid import Orientation, StructuralError, normalize
from reportcards.excel.reader import SheetNotFoundError, WorkbookReadError, get_sheet_names, read_grid
from reportcards.logging.error_log import DEFAULT_LOG_DIR, DiagnosticLogBuffer
from reportcards.logging.init import log_summary, set_debug, setup_logging
from reportcards.models.template import TemplateSchema
from reportcards.services.augment import augment_schema
from reportcards.services.export import build_payload, write_payload
from reportcards.services.orchestrator import ParsedFile, ProcessingError, process_all
from reportcards.services.overrides import apply_overrides, select_range
from reportcards.services.sample import write_sample_workbook
from reportcards.services.summary import render_summary_line

"""CLI entrypoint.

Sub-commands:
- parse: validate mark-sheets, log diagnostics, optionally write the
  renderer payload as JSON
- sample: write a sample workbook for a template
- templates: list built-in templates
- inspect: print sheet names, headers and the first canonical rows

Defaults can come from the environment (.env is loaded first without
overriding variables already set): REPORTCARDS_TEMPLATE,
REPORTCARDS_ORIENTATION, REPORTCARDS_SHEET, REPORTCARDS_LOG_DIR.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path) -> None:
    """Load .env without overriding variables already set in the process."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def _add_template_args(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--template", help="Built-in template id (see `templates`)")
    group.add_argument("--template-file", type=Path, help="Template YAML file")
    p.add_argument("--custom-subjects", type=Path, help="YAML/JSON list of extra subjects to append")


def _add_orientation_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--orientation",
        choices=[o.value for o in Orientation],
        help="rows = one row per student, columns = one column per student",
    )


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="reportcards", description="Mark-sheet -> validated student result records")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    parse_p = sub.add_parser("parse", help="Validate mark-sheets and compute results")
    parse_p.add_argument("files", nargs="+", type=Path)
    _add_template_args(parse_p)
    _add_orientation_arg(parse_p)
    parse_p.add_argument("--sheet", help="Sheet name (default: the template's sheet)")
    parse_p.add_argument("--session", help="Override the session of every student, e.g. 2024-25")
    parse_p.add_argument("--class-section", help="Override class and section, e.g. V-A")
    parse_p.add_argument("--range", nargs=2, type=int, metavar=("FROM", "TO"), help="1-based student range")
    parse_p.add_argument("--output", type=Path, help="JSON payload file (directory when several files are given)")
    parse_p.add_argument("--valid-only", action="store_true", help="Leave students with errors out of the payload")
    parse_p.add_argument("--debug", action="store_true", default=argparse.SUPPRESS, help="Enable debug logging")

    sample_p = sub.add_parser("sample", help="Write a sample workbook for a template")
    _add_template_args(sample_p)
    _add_orientation_arg(sample_p)
    sample_p.add_argument("--output", type=Path, help="Target .xlsx (default: the template's download file name)")
    sample_p.add_argument("--students", type=int, default=2, help="Number of sample students")

    sub.add_parser("templates", help="List built-in templates")

    inspect_p = sub.add_parser("inspect", help="Print headers and first rows of a mark-sheet")
    inspect_p.add_argument("file", type=Path)
    _add_template_args(inspect_p)
    _add_orientation_arg(inspect_p)
    inspect_p.add_argument("--sheet", help="Sheet name (default: the template's sheet)")
    inspect_p.add_argument("--rows", type=int, default=3, help="Number of canonical rows to show")

    return p.parse_args(argv)


def _resolve_schema(args: argparse.Namespace) -> TemplateSchema:
    if args.template_file is not None:
        schema = load_template(args.template_file)
    else:
        schema = get_template(args.template or os.getenv("REPORTCARDS_TEMPLATE"))
    if args.custom_subjects is not None:
        extensions = load_custom_subjects(args.custom_subjects)
        try:
            schema = augment_schema(schema, extensions)
        except ValueError as e:
            raise ConfigError(f"custom subjects: {e}") from e
        check_schema_invariants(schema)
    return schema


def _resolve_orientation(args: argparse.Namespace) -> Orientation:
    value = args.orientation or os.getenv("REPORTCARDS_ORIENTATION") or Orientation.ROWS.value
    try:
        return Orientation(value.lower())
    except ValueError as e:
        raise ConfigError(f"invalid orientation: {value}") from e


def _payload_path(output: Path, source: Path, many: bool) -> Path:
    if many or output.is_dir():
        return output / f"{source.stem}.json"
    return output


def _log_diagnostics(logger, item: ParsedFile) -> None:
    for d in item.result.errors:
        logger.warning("%s %s [%s] %s", item.path.name, d.locus, d.code.value, d.message)
    for d in item.result.warnings:
        logger.debug("%s %s [%s] %s", item.path.name, d.locus, d.code.value, d.message)


def _write_outputs(args: argparse.Namespace, schema: TemplateSchema, parsed: list[ParsedFile], logger) -> None:
    start, end = args.range if args.range else (None, None)
    many = len(parsed) > 1
    for item in parsed:
        records = apply_overrides(item.result.records, session=args.session, class_section=args.class_section)
        records = select_range(records, start, end)
        result = dataclasses.replace(item.result, records=tuple(records))
        if args.range:
            logger.info("%s: students %d-%d selected (%d)", item.path.name, start, end, len(records))
        if args.output is not None:
            target = write_payload(
                _payload_path(args.output, item.path, many),
                build_payload(result, schema, valid_only=args.valid_only),
            )
            logger.info("payload written: %s", target)


def _cmd_parse(args: argparse.Namespace, logger) -> int:
    try:
        schema = _resolve_schema(args)
        orientation = _resolve_orientation(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    sheet = args.sheet or os.getenv("REPORTCARDS_SHEET") or None
    log_dir = Path(os.getenv("REPORTCARDS_LOG_DIR") or DEFAULT_LOG_DIR)
    logger.info(f"template={schema.template_id} orientation={orientation.value} files={len(args.files)}")

    try:
        result, parsed = process_all(args.files, schema, orientation, sheet, DiagnosticLogBuffer(log_dir))
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    for item in parsed:
        _log_diagnostics(logger, item)
    try:
        _write_outputs(args, schema, parsed, logger)
    except OSError as e:
        logger.error(f"output: {e}")
        return EXIT_FATAL

    summary_line = render_summary_line(result)
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.failed_files or result.partial_files:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _cmd_sample(args: argparse.Namespace, logger) -> int:
    try:
        schema = _resolve_schema(args)
        orientation = _resolve_orientation(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    output = args.output or Path(schema.download_file_name or f"{schema.template_id}_sample.xlsx")
    try:
        write_sample_workbook(schema, output, orientation, sample_students=args.students)
    except OSError as e:
        logger.error(f"sample: {e}")
        return EXIT_FATAL
    return EXIT_SUCCESS_ALL


def _cmd_templates(args: argparse.Namespace, logger) -> int:
    try:
        templates = list_templates()
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    for schema in templates:
        groups = ", ".join(f"{gid}[{g.min_selected}-{g.max_selected}]" for gid, g in schema.choice_groups.items())
        print(f"{schema.template_id}\t{schema.label}\tsubjects={len(schema.subjects)}\tchoice_groups={groups or '-'}")
    return EXIT_SUCCESS_ALL


def _cmd_inspect(args: argparse.Namespace, logger) -> int:
    try:
        schema = _resolve_schema(args)
        orientation = _resolve_orientation(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    path: Path = args.file
    try:
        sheets = get_sheet_names(path)
        sheet = None if sheets == [""] else (args.sheet or os.getenv("REPORTCARDS_SHEET") or schema.sheet_name)
        grid = read_grid(path, sheet)
        table = normalize(grid, orientation, header_row=schema.header_row)
    except (WorkbookReadError, SheetNotFoundError, StructuralError) as e:
        print(f"inspect: {e}")
        return EXIT_FATAL

    print(f"FILE: {path.name} sheets={sheets}")
    print(f"  SHEET: {sheet or '-'} orientation={orientation.value} students={len(table.rows)}")
    print(f"  headers={list(table.headers)}")
    for row in table.rows[: args.rows]:
        values = {h: row.cell(i) for i, h in enumerate(table.headers) if h.strip()}
        print(f"  position={row.position} values={values}")
    return EXIT_SUCCESS_ALL


COMMANDS = {
    "parse": _cmd_parse,
    "sample": _cmd_sample,
    "templates": _cmd_templates,
    "inspect": _cmd_inspect,
}


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read the process arguments when none were passed in (tests call main([...]))
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    set_debug(args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    return COMMANDS[args.command](args, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
