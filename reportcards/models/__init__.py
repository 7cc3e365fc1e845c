"""Domain models for the report card engine.

This package contains the template schema, cell value, student record and
diagnostic classes used throughout the application.
"""

from .cell_value import Absent, Blank, CellValue, Invalid, Number, classify_cell
from .diagnostic import Diagnostic, DiagnosticCode, Severity
from .parse_result import ParseResult
from .student_record import Aggregate, StudentRecord, SubjectScore
from .template import ChoiceGroup, Division, FieldType, Grading, IdentityField, Subject, TemplateSchema

__all__ = [
    # Template schema
    "ChoiceGroup",
    "Division",
    "FieldType",
    "Grading",
    "IdentityField",
    "Subject",
    "TemplateSchema",
    # Cell values
    "Absent",
    "Blank",
    "CellValue",
    "Invalid",
    "Number",
    "classify_cell",
    # Results
    "Aggregate",
    "Diagnostic",
    "DiagnosticCode",
    "ParseResult",
    "Severity",
    "StudentRecord",
    "SubjectScore",
]
