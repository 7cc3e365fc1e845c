# Shared pytest fixtures
from __future__ import annotations

from pathlib import Path

import pytest

from reportcards.logging.init import reset_logging
from reportcards.models.template import (
    ChoiceGroup,
    Division,
    FieldType,
    Grading,
    IdentityField,
    Subject,
    TemplateSchema,
)

HEADERS = [
    "ROLL_NO",
    "STUDENT_NAME",
    "DOB",
    "ENG_UT1",
    "ENG_ANNUAL",
    "MATH_T1",
    "MATH_T2",
    "MATH_T3",
    "BIO_T1",
    "BIO_T2",
    "BIO_T3",
]

BLANK3 = ("", "", "")


def student(roll=1, name="Aarav Sharma", dob="15/05/2012", eng=(8, 70), math=(8, 7, 9), bio=BLANK3) -> list[str]:
    """One row of the mini mark-sheet; every value stringified like the reader does."""
    return [str(v) for v in (roll, name, dob, *eng, *math, *bio)]


@pytest.fixture()
def mini_schema() -> TemplateSchema:
    """English (required, 100) + Mathematics / Biology (30 each, choose exactly one)."""
    three = ("T1", "T2", "T3")
    return TemplateSchema(
        template_id="mini",
        label="Mini",
        identity_fields={
            "roll_no": IdentityField("Roll No.", "ROLL_NO", FieldType.NUMBER),
            "name": IdentityField("Student Name", "STUDENT_NAME"),
            "dob": IdentityField("Date of Birth", "DOB", FieldType.DATE, date_format="DD/MM/YYYY"),
        },
        subjects=(
            Subject("english", "English", 100, ("UT1", "ANNUAL"), {"UT1": 10, "ANNUAL": 90}),
            Subject("math", "Mathematics", 30, three, {c: 10 for c in three}, optional=True, choice_group="sci_elective"),
            Subject("biology", "Biology", 30, three, {c: 10 for c in three}, optional=True, choice_group="sci_elective"),
        ),
        choice_groups={"sci_elective": ChoiceGroup(1, 1, "Science Elective")},
        grading=Grading(
            pass_percent=33,
            divisions=(Division("I", 60), Division("II", 48), Division("III", 36)),
        ),
        column_mappings={
            "english": {"UT1": "ENG_UT1", "ANNUAL": "ENG_ANNUAL"},
            "math": {c: f"MATH_{c}" for c in three},
            "biology": {c: f"BIO_{c}" for c in three},
        },
    )


@pytest.fixture()
def make_grid():
    """Build a row-oriented grid: header line followed by student rows."""
    def _make(*rows: list[str], headers: list[str] | None = None) -> list[list[str]]:
        return [list(headers or HEADERS), *[list(r) for r in rows]]
    return _make


@pytest.fixture()
def temp_workdir(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "data").mkdir()
    (tmp_path / "logs").mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("REPORTCARDS_TEMPLATE", raising=False)
    monkeypatch.delenv("REPORTCARDS_ORIENTATION", raising=False)
    monkeypatch.delenv("REPORTCARDS_SHEET", raising=False)
    monkeypatch.setenv("REPORTCARDS_LOG_DIR", str(tmp_path / "logs"))
    return tmp_path


@pytest.fixture(autouse=True)
def _fresh_logging():
    # the console handler binds sys.stdout at setup time; capsys swaps it per test
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def student_row():
    return student
