from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Template schema models for the report card engine.

A TemplateSchema declares everything the engine needs to know about one class
mark-sheet: identity columns, scoring subjects with their components and maxima,
optional/elective rules, choice-group cardinality and grading thresholds.

These are plain frozen dataclasses. Loading and invariant checks live in
reportcards.config.loader; runtime augmentation lives in
reportcards.services.augment.
"""

__all__ = [
    "FieldType",
    "IdentityField",
    "Subject",
    "ChoiceGroup",
    "Division",
    "Grading",
    "TemplateSchema",
    "strftime_pattern",
]

_DATE_TOKENS = (("YYYY", "%Y"), ("YY", "%y"), ("DD", "%d"), ("MM", "%m"))


def strftime_pattern(date_format: str) -> str:
    """'DD/MM/YYYY' -> '%d/%m/%Y'."""
    pattern = date_format
    for token, directive in _DATE_TOKENS:
        pattern = pattern.replace(token, directive)
    return pattern


class FieldType(Enum):
    """Declared type of an identity column."""
    STRING = "string"
    NUMBER = "number"
    DATE = "date"


@dataclass(frozen=True)
class IdentityField:
    """One student identity column (name, roll number, date of birth ...)."""
    label: str  # Human label used in diagnostics
    header: str  # External column header (matched case-insensitively)
    field_type: FieldType = FieldType.STRING
    date_format: str | None = None  # e.g. "DD/MM/YYYY" for DATE fields
    required: bool = True


@dataclass(frozen=True)
class Subject:
    """A gradable subject made of one or more scoring components."""
    key: str
    label: str
    max_marks: float
    components: tuple[str, ...]
    component_max: dict[str, float] = field(default_factory=dict)
    optional: bool = False
    choice_group: str | None = None

    def max_for(self, component: str) -> float:
        """Maximum for a component; falls back to the subject maximum."""
        return self.component_max.get(component, self.max_marks)


@dataclass(frozen=True)
class ChoiceGroup:
    min_selected: int
    max_selected: int
    label: str


@dataclass(frozen=True)
class Division:
    name: str
    threshold: float  # percentage, inclusive


@dataclass(frozen=True)
class Grading:
    """Pass mark and division table.

    divisions must already be sorted by threshold, highest first. The engine
    takes the first division whose threshold is met and never re-sorts.
    """
    pass_percent: float = 33.0
    divisions: tuple[Division, ...] = ()


@dataclass(frozen=True)
class TemplateSchema:
    """Immutable per-class template consumed by the engine and the exporters."""
    template_id: str
    label: str
    identity_fields: dict[str, IdentityField]
    subjects: tuple[Subject, ...]
    choice_groups: dict[str, ChoiceGroup] = field(default_factory=dict)
    grading: Grading = field(default_factory=Grading)
    # subject key -> component -> external header
    column_mappings: dict[str, dict[str, str]] = field(default_factory=dict)
    co_scholastic_fields: dict[str, IdentityField] = field(default_factory=dict)
    sheet_name: str = "details"
    header_row: int = 1  # 1-based; lines above are title rows
    download_file_name: str | None = None

    def subject(self, key: str) -> Subject:
        for s in self.subjects:
            if s.key == key:
                return s
        raise KeyError(key)

    def header_for(self, subject_key: str, component: str) -> str | None:
        return self.column_mappings.get(subject_key, {}).get(component)
