from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence

from ..models.template import ChoiceGroup, Subject, TemplateSchema

"""Template augmentation with user-added subjects.

augment_schema() is a pure function: it returns a new TemplateSchema with the
extra subjects appended, column mappings generated for them, and a default
{1, 1} choice group created for every group id they reference that the base
template does not declare. Where custom subjects are stored between sessions
is the caller's business.
"""

__all__ = [
    "generated_header",
    "generate_column_mappings",
    "augment_schema",
]


def generated_header(subject: Subject, component: str) -> str:
    """Default external header, e.g. 'PHYSICS_UT1 (Max 10)'."""
    return f"{subject.key.upper()}_{component} (Max {subject.max_for(component):g})"


def generate_column_mappings(subjects: Iterable[Subject]) -> dict[str, dict[str, str]]:
    return {s.key: {c: generated_header(s, c) for c in s.components} for s in subjects}


def augment_schema(base: TemplateSchema, extensions: Sequence[Subject]) -> TemplateSchema:
    """Append custom subjects to a template.

    Existing column mappings are kept as they are; only the appended subjects
    get generated headers.

    Raises
    ------
    ValueError: an extension reuses a subject key already present
    """
    if not extensions:
        return base

    known = {s.key for s in base.subjects}
    for subject in extensions:
        if subject.key in known:
            raise ValueError(f"duplicate subject key: {subject.key}")
        known.add(subject.key)

    mappings = {key: dict(components) for key, components in base.column_mappings.items()}
    mappings.update(generate_column_mappings(extensions))

    groups = dict(base.choice_groups)
    for subject in extensions:
        if subject.choice_group and subject.choice_group not in groups:
            groups[subject.choice_group] = ChoiceGroup(
                min_selected=1,
                max_selected=1,
                label=f"Custom Elective ({subject.choice_group})",
            )

    return dataclasses.replace(
        base,
        subjects=(*base.subjects, *extensions),
        column_mappings=mappings,
        choice_groups=groups,
    )
