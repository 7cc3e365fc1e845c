from __future__ import annotations

import dataclasses
from collections.abc import Sequence

from ..models.student_record import StudentRecord

"""Post-parse caller adjustments.

Both helpers work on already computed records and never re-run validation;
diagnostics keep pointing at the originally indexed rows.
"""

__all__ = [
    "apply_overrides",
    "select_range",
    "split_class_section",
]


def split_class_section(value: str) -> tuple[str, str | None]:
    """'V-A' -> ('V', 'A'); a value without '-' is a class only."""
    class_name, sep, section = value.partition("-")
    return class_name.strip(), (section.strip() or None) if sep else None


def apply_overrides(
    records: Sequence[StudentRecord],
    *,
    session: str | None = None,
    class_section: str | None = None,
) -> list[StudentRecord]:
    """Return new records with session / class / section substituted.

    Empty or None overrides leave the identity untouched.
    """
    updates: dict[str, str] = {}
    if session and session.strip():
        updates["session"] = session.strip()
    if class_section and class_section.strip():
        class_name, section = split_class_section(class_section)
        updates["class"] = class_name
        if section is not None:
            updates["section"] = section

    if not updates:
        return list(records)
    return [dataclasses.replace(r, identity={**r.identity, **updates}) for r in records]


def select_range(records: Sequence[StudentRecord], start: int | None, end: int | None) -> list[StudentRecord]:
    """Students start..end (1-based, inclusive), clamped to the available records."""
    first = max(1, start or 1)
    last = min(len(records), end if end is not None else len(records))
    if last < first:
        return []
    return list(records[first - 1:last])
