from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..contracts import TEMPLATE_SCHEMA_PATH
from ..models.template import (
    ChoiceGroup,
    Division,
    FieldType,
    Grading,
    IdentityField,
    Subject,
    TemplateSchema,
)
from ..services.augment import generated_header

"""Template loader.

Responsibilities:
- Load class templates from YAML (built-in registry or a user file)
- Validate them against contracts/template_schema.json
- Build immutable TemplateSchema objects, generating column mappings for
  subjects without explicit ones
- Assert the schema invariants the engine relies on (check_schema_invariants)
- Load custom subject lists used to augment a template
"""

__all__ = [
    "ConfigError",
    "SchemaError",
    "BUILTIN_TEMPLATES_PATH",
    "load_template",
    "load_custom_subjects",
    "template_from_dict",
    "check_schema_invariants",
    "list_templates",
    "get_template",
    "default_template_id",
]

logger = logging.getLogger(__name__)

BUILTIN_TEMPLATES_PATH = Path(__file__).parent / "builtin_templates.yml"


class ConfigError(Exception):
    pass


class SchemaError(ConfigError):
    """A template broke one of the invariants the engine relies on."""


@lru_cache(maxsize=1)
def _template_json_schema() -> dict[str, Any]:
    if not TEMPLATE_SCHEMA_PATH.exists():
        raise ConfigError(f"template schema not found: {TEMPLATE_SCHEMA_PATH}")
    try:
        return json.loads(TEMPLATE_SCHEMA_PATH.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e


def _validate(data: Any, schema: Mapping[str, Any]) -> None:
    try:
        jsonschema.validate(data, schema)
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        where = f" at {location}" if location else ""
        raise ConfigError(f"template validation failed{where}: {e.message}") from e


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise ConfigError(f"template file not found: {path}")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e


def _identity_field(raw: Mapping[str, Any]) -> IdentityField:
    return IdentityField(
        label=raw["label"],
        header=raw["header"],
        field_type=FieldType(raw.get("type", "string")),
        date_format=raw.get("date_format"),
        required=raw.get("required", True),
    )


def _subject(raw: Mapping[str, Any]) -> Subject:
    return Subject(
        key=raw["key"],
        label=raw["label"],
        max_marks=raw["max_marks"],
        components=tuple(raw["components"]),
        component_max=dict(raw.get("component_max") or {}),
        optional=raw.get("optional", False),
        choice_group=raw.get("choice_group"),
    )


def template_from_dict(data: Mapping[str, Any]) -> TemplateSchema:
    """Validate a template mapping and build the TemplateSchema.

    Raises ConfigError on contract violations and SchemaError on broken
    invariants.
    """
    _validate(data, _template_json_schema())

    subjects = tuple(_subject(s) for s in data["subjects"])
    explicit = data.get("column_mappings") or {}
    mappings: dict[str, dict[str, str]] = {}
    for subject in subjects:
        if subject.key in explicit:
            mappings[subject.key] = dict(explicit[subject.key])
        else:
            mappings[subject.key] = {c: generated_header(subject, c) for c in subject.components}

    grading_raw = data.get("grading") or {}
    grading = Grading(
        pass_percent=grading_raw.get("pass_percent", 33),
        divisions=tuple(Division(name=d["name"], threshold=d["threshold"]) for d in grading_raw.get("divisions", [])),
    )

    groups = {
        gid: ChoiceGroup(min_selected=g["min"], max_selected=g["max"], label=g.get("label", gid))
        for gid, g in (data.get("choice_groups") or {}).items()
    }

    schema = TemplateSchema(
        template_id=data["id"],
        label=data["label"],
        identity_fields={k: _identity_field(v) for k, v in data["identity_fields"].items()},
        subjects=subjects,
        choice_groups=groups,
        grading=grading,
        column_mappings=mappings,
        co_scholastic_fields={k: _identity_field(v) for k, v in (data.get("co_scholastic_fields") or {}).items()},
        sheet_name=data.get("sheet_name", "details"),
        header_row=data.get("header_row", 1),
        download_file_name=data.get("download_file_name"),
    )
    check_schema_invariants(schema)
    return schema


def check_schema_invariants(schema: TemplateSchema) -> None:
    """Defensive assertions at the schema boundary.

    The engine does not re-check any of these; a schema that violates them
    gives undefined results.
    """
    problems: list[str] = []

    keys = [s.key for s in schema.subjects]
    duplicates = sorted({k for k in keys if keys.count(k) > 1})
    if duplicates:
        problems.append(f"duplicate subject keys: {duplicates}")

    headers = [f.header.strip().lower() for f in schema.identity_fields.values()]
    dup_headers = sorted({h for h in headers if headers.count(h) > 1})
    if dup_headers:
        problems.append(f"duplicate identity headers: {dup_headers}")

    for subject in schema.subjects:
        if subject.choice_group and subject.choice_group not in schema.choice_groups:
            problems.append(f"subject '{subject.key}' references unknown choice group '{subject.choice_group}'")
        stray = sorted(set(subject.component_max) - set(subject.components))
        if stray:
            problems.append(f"subject '{subject.key}' has component_max for undeclared components {stray}")

    for gid, group in schema.choice_groups.items():
        if group.min_selected > group.max_selected:
            problems.append(f"choice group '{gid}' has min {group.min_selected} > max {group.max_selected}")

    thresholds = [d.threshold for d in schema.grading.divisions]
    if thresholds != sorted(thresholds, reverse=True):
        problems.append(f"divisions must be sorted by threshold, highest first: {thresholds}")

    if problems:
        raise SchemaError(f"template '{schema.template_id}': " + "; ".join(problems))


def load_template(path: Path) -> TemplateSchema:
    """Load a single template YAML file."""
    data = _read_yaml(path)
    if not isinstance(data, dict):
        raise ConfigError(f"template validation failed: {path} does not hold a mapping")
    return template_from_dict(data)


def load_custom_subjects(path: Path) -> list[Subject]:
    """Load user-added subjects (YAML or JSON list of subject mappings)."""
    data = _read_yaml(path)  # JSON is a subset of YAML
    if data is None:
        return []
    schema = _template_json_schema()
    _validate(data, {"$defs": schema["$defs"], "type": "array", "items": {"$ref": "#/$defs/subject"}})
    return [_subject(raw) for raw in data]


@lru_cache(maxsize=1)
def _builtin_registry() -> tuple[str, dict[str, TemplateSchema]]:
    data = _read_yaml(BUILTIN_TEMPLATES_PATH)
    templates = {}
    for raw in data["templates"]:
        schema = template_from_dict(raw)
        templates[schema.template_id] = schema
    return data["default_template"], templates


def default_template_id() -> str:
    return _builtin_registry()[0]


def list_templates() -> list[TemplateSchema]:
    """Built-in templates in declaration order."""
    return list(_builtin_registry()[1].values())


def get_template(template_id: str | None) -> TemplateSchema:
    """Built-in template by id; unknown ids fall back to the default template."""
    default_id, templates = _builtin_registry()
    if template_id in templates:
        return templates[template_id]
    if template_id is not None:
        logger.warning("unknown template '%s', falling back to '%s'", template_id, default_id)
    return templates[default_id]
