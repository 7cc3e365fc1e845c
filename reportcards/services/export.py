from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

from ..models.diagnostic import Diagnostic
from ..models.parse_result import ParseResult
from ..models.student_record import StudentRecord
from ..models.template import TemplateSchema

"""Renderer payload.

The presentation layer needs the ordered subject list of the template and,
per student, identity, subject totals/maxima and the aggregate. Diagnostics
travel alongside as plain dictionaries so a preview can list them.
"""

__all__ = [
    "record_to_dict",
    "diagnostic_to_dict",
    "build_payload",
    "write_payload",
]


def record_to_dict(record: StudentRecord) -> dict[str, Any]:
    data = asdict(record)
    data["selected_subjects"] = list(record.selected_subjects)
    data["aggregate"]["failed_subject_labels"] = list(record.aggregate.failed_subject_labels)
    return data


def diagnostic_to_dict(diagnostic: Diagnostic) -> dict[str, Any]:
    return {
        "row": diagnostic.row,
        "cell": diagnostic.cell,
        "severity": diagnostic.severity.value,
        "code": diagnostic.code.value,
        "field": diagnostic.field,
        "message": diagnostic.message,
    }


def build_payload(result: ParseResult, schema: TemplateSchema, valid_only: bool = False) -> dict[str, Any]:
    """JSON-ready payload for report generation.

    valid_only drops students with blocking errors; diagnostics are always
    kept in full and still refer to the original rows.
    """
    records = result.valid_records if valid_only else result.records
    return {
        "template": {"id": schema.template_id, "label": schema.label},
        "subjects": [{"key": s.key, "label": s.label, "max_marks": s.max_marks} for s in schema.subjects],
        "students": [record_to_dict(r) for r in records],
        "errors": [diagnostic_to_dict(d) for d in result.errors],
        "warnings": [diagnostic_to_dict(d) for d in result.warnings],
    }


def write_payload(path: Path, payload: dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return path
