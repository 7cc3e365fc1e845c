from __future__ import annotations

import dataclasses

from reportcards.excel.grid import Orientation
from reportcards.models.diagnostic import GLOBAL_ROW, DiagnosticCode, Severity
from reportcards.models.template import IdentityField, Subject
from reportcards.services.engine import parse


def _codes(diagnostics):
    return [d.code for d in diagnostics]


def _transpose(grid):
    width = max(len(r) for r in grid)
    return [[r[i] if i < len(r) else "" for r in grid] for i in range(width)]


def test_clean_student_is_fully_computed(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row()), mini_schema)

    assert result.errors == ()
    assert result.warnings == ()
    (record,) = result.records
    assert record.row_number == 2
    assert record.identity == {"roll_no": 1, "name": "Aarav Sharma", "dob": "15/05/2012"}
    assert record.selected_subjects == ("english", "math")
    assert set(record.subject_scores) == {"english", "math"}

    math = record.subject_scores["math"]
    assert math.components == {"T1": 8, "T2": 7, "T3": 9}
    assert math.total == 24
    assert math.max == 30
    assert math.percentage == 80.0
    assert math.passed is True
    assert math.grade == "B1"
    assert math.remark == "Very Good"

    agg = record.aggregate
    assert agg.total_obtained == 102
    assert agg.total_max == 130
    assert agg.percentage == 78.46
    assert agg.grade == "B1"
    assert agg.passed is True
    assert agg.division == "I"
    assert agg.failed_subject_labels == ()
    assert record.has_blocking_errors is False


def test_absent_marker_counts_as_zero_with_one_warning(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=(10, "AB", 8))), mini_schema)

    record = result.records[0]
    assert record.subject_scores["math"].components == {"T1": 10, "T2": 0, "T3": 8}
    assert record.subject_scores["math"].total == 18
    assert result.errors == ()
    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert warning.code is DiagnosticCode.ABSENT_TREATED_AS_ZERO
    assert warning.severity is Severity.WARNING
    assert warning.field == "math.T2"
    assert warning.cell == "G2"
    assert record.has_blocking_errors is False


def test_absent_marker_is_case_insensitive(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=(10, " ab ", 8))), mini_schema)
    assert _codes(result.warnings) == [DiagnosticCode.ABSENT_TREATED_AS_ZERO]
    assert result.records[0].subject_scores["math"].total == 18


def test_blank_component_of_selected_subject_is_zero(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=(10, "", 8))), mini_schema)
    assert _codes(result.warnings) == [DiagnosticCode.BLANK_TREATED_AS_ZERO]
    assert result.records[0].subject_scores["math"].components["T2"] == 0


def test_component_overflow_is_reported_not_clamped(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=(12, 5, 5))), mini_schema)

    assert _codes(result.errors) == [DiagnosticCode.EXCEEDS_COMPONENT_MAX]
    assert result.errors[0].field == "math.T1"
    score = result.records[0].subject_scores["math"]
    assert score.components["T1"] == 12
    assert score.total == 22
    assert result.records[0].has_blocking_errors is True


def test_additive_overflow_without_component_overflow(mini_schema, make_grid, student_row):
    three = ("T1", "T2", "T3")
    math = Subject("math", "Mathematics", 20, three, {c: 10 for c in three}, optional=True, choice_group="sci_elective")
    schema = dataclasses.replace(
        mini_schema, subjects=(mini_schema.subjects[0], math, mini_schema.subjects[2])
    )
    result = parse(make_grid(student_row(math=(8, 8, 8))), schema)

    assert _codes(result.errors) == [DiagnosticCode.SUBJECT_TOTAL_EXCEEDS_MAX]
    assert result.errors[0].field == "math"
    assert result.errors[0].cell is None


def test_component_and_total_overflow_are_both_reported(mini_schema, make_grid, student_row):
    three = ("T1", "T2", "T3")
    math = Subject("math", "Mathematics", 20, three, {c: 10 for c in three}, optional=True, choice_group="sci_elective")
    schema = dataclasses.replace(
        mini_schema, subjects=(mini_schema.subjects[0], math, mini_schema.subjects[2])
    )
    result = parse(make_grid(student_row(math=(12, 9, 9))), schema)
    assert _codes(result.errors) == [
        DiagnosticCode.EXCEEDS_COMPONENT_MAX,
        DiagnosticCode.SUBJECT_TOTAL_EXCEEDS_MAX,
    ]


def test_negative_mark(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=(-1, 5, 5))), mini_schema)
    assert _codes(result.errors) == [DiagnosticCode.NEGATIVE_MARK]
    assert result.records[0].subject_scores["math"].components["T1"] == -1
    assert result.records[0].subject_scores["math"].total == 9


def test_non_numeric_mark_is_null_and_blocks(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=("x", 5, 5))), mini_schema)
    assert _codes(result.errors) == [DiagnosticCode.NON_NUMERIC_MARK]
    score = result.records[0].subject_scores["math"]
    assert score.components["T1"] is None
    assert score.total == 10


def test_digit_group_and_non_ascii_marks_are_non_numeric(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=("1_0", "5", "५"))), mini_schema)
    assert _codes(result.errors) == [DiagnosticCode.NON_NUMERIC_MARK] * 2
    assert [e.cell for e in result.errors] == ["F2", "H2"]
    score = result.records[0].subject_scores["math"]
    assert score.components == {"T1": None, "T2": 5, "T3": None}
    assert score.total == 5
    assert result.records[0].has_blocking_errors

    roll = parse(make_grid(student_row(roll="1_0")), mini_schema)
    assert _codes(roll.errors) == [DiagnosticCode.TYPE_MISMATCH]
    assert roll.records[0].identity["roll_no"] == "1_0"


def test_garbage_cell_selects_an_optional_subject(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=("x", "", ""))), mini_schema)
    record = result.records[0]
    assert "math" in record.selected_subjects
    assert _codes(result.errors) == [DiagnosticCode.NON_NUMERIC_MARK]
    assert _codes(result.warnings) == [DiagnosticCode.BLANK_TREATED_AS_ZERO] * 2


def test_blank_optional_subject_is_silently_excluded(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row()), mini_schema)
    record = result.records[0]
    assert "biology" not in record.subject_scores
    assert "biology" not in record.selected_subjects
    assert record.aggregate.total_max == 130
    assert not [d for d in (*result.errors, *result.warnings) if d.field.startswith("biology")]


def test_required_subject_blank(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(eng=("", ""))), mini_schema)
    record = result.records[0]
    assert _codes(result.errors) == [DiagnosticCode.REQUIRED_SUBJECT_BLANK]
    assert result.errors[0].field == "english"
    assert "english" in record.selected_subjects
    assert "english" not in record.subject_scores
    assert record.aggregate.total_max == 30
    assert record.has_blocking_errors is True


def test_choice_group_two_selected(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(bio=(5, 5, 5))), mini_schema)
    violations = [e for e in result.errors if e.code is DiagnosticCode.CHOICE_GROUP_VIOLATION]
    assert len(violations) == 1
    assert violations[0].field == "sci_elective"
    assert "2 subject(s) selected" in violations[0].message
    assert "expected exactly 1" in violations[0].message


def test_choice_group_none_selected(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=("", "", ""))), mini_schema)
    violations = [e for e in result.errors if e.code is DiagnosticCode.CHOICE_GROUP_VIOLATION]
    assert len(violations) == 1
    assert "0 subject(s) selected" in violations[0].message


def test_choice_group_exactly_one_selected(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=("", "", ""), bio=(5, 6, 7))), mini_schema)
    assert result.errors == ()
    assert result.records[0].selected_subjects == ("english", "biology")


def test_pass_fail_precedence(mini_schema, make_grid, student_row):
    # 104 / 130 = 80 % overall, but Mathematics is 9 / 30 = 30 %
    result = parse(make_grid(student_row(eng=(10, 85), math=(3, 3, 3))), mini_schema)
    agg = result.records[0].aggregate
    assert agg.percentage == 80.0
    assert agg.passed is False
    assert agg.division is None
    assert agg.failed_subject_labels == ("Mathematics",)
    assert result.records[0].subject_scores["math"].passed is False


def test_division_threshold_is_inclusive(mini_schema, make_grid, student_row):
    # 78 / 130 = 60.00 %
    result = parse(make_grid(student_row(eng=(10, 50), math=(6, 6, 6))), mini_schema)
    agg = result.records[0].aggregate
    assert agg.percentage == 60.0
    assert agg.division == "I"


def test_missing_identity_column_aborts_subject_processing(mini_schema, make_grid, student_row):
    headers = [h for h in make_grid()[0] if h != "DOB"]
    row = student_row()
    del row[2]
    result = parse(make_grid(row, headers=headers), mini_schema)

    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.code is DiagnosticCode.MISSING_COLUMN
    assert error.field == "identity"
    assert error.message == 'Column(s) not found in headers: "DOB".'
    assert error.row == 2
    assert error.cell is None

    record = result.records[0]
    assert record.identity == {"roll_no": 1, "name": "Aarav Sharma"}
    assert record.subject_scores == {}
    assert record.selected_subjects == ()
    assert record.aggregate.total_obtained == 0
    assert record.aggregate.passed is False
    assert record.has_blocking_errors is True


def test_all_missing_identity_columns_listed_in_one_message(mini_schema, make_grid, student_row):
    headers = [h for h in make_grid()[0] if h not in ("DOB", "ROLL_NO")]
    row = student_row()[1:2] + student_row()[3:]
    result = parse(make_grid(row, row, headers=headers), mini_schema)

    assert [e.row for e in result.errors] == [2, 3]
    assert result.errors[0].message == 'Column(s) not found in headers: "ROLL_NO", "DOB".'


def test_empty_required_identity_field(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(name="  ")), mini_schema)
    assert _codes(result.errors) == [DiagnosticCode.EMPTY_REQUIRED_FIELD]
    assert result.errors[0].field == "name"
    assert result.errors[0].cell == "B2"
    assert result.records[0].identity["name"] == ""


def test_number_identity_coercion(mini_schema, make_grid, student_row):
    ok = parse(make_grid(student_row(roll=" 7 ")), mini_schema)
    assert ok.records[0].identity["roll_no"] == 7

    bad = parse(make_grid(student_row(roll="7a")), mini_schema)
    assert _codes(bad.errors) == [DiagnosticCode.TYPE_MISMATCH]
    assert bad.records[0].identity["roll_no"] == "7a"


def test_date_identity_values(mini_schema, make_grid, student_row):
    from_cell = parse(make_grid(student_row(dob="2012-05-15 00:00:00")), mini_schema)
    assert from_cell.records[0].identity["dob"] == "15/05/2012"
    assert from_cell.warnings == ()

    unparsed = parse(make_grid(student_row(dob="May 15")), mini_schema)
    assert unparsed.records[0].identity["dob"] == "May 15"
    assert _codes(unparsed.warnings) == [DiagnosticCode.UNPARSED_DATE]
    assert unparsed.errors == ()


def test_duplicate_header_last_occurrence_wins(mini_schema, make_grid, student_row):
    headers = [*make_grid()[0], "MATH_T1"]
    row = [*student_row(math=(1, 7, 9)), "9"]
    result = parse(make_grid(row, headers=headers), mini_schema)
    assert result.records[0].subject_scores["math"].components["T1"] == 9


def test_header_matching_is_case_insensitive(mini_schema, make_grid, student_row):
    headers = [h.lower() for h in make_grid()[0]]
    result = parse(make_grid(student_row(), headers=headers), mini_schema)
    assert result.errors == ()


def test_unmapped_component_warns(mini_schema, make_grid, student_row):
    mappings = {**mini_schema.column_mappings, "english": {"UT1": "ENG_UT1"}}
    schema = dataclasses.replace(mini_schema, column_mappings=mappings)
    result = parse(make_grid(student_row()), schema)

    assert _codes(result.warnings) == [DiagnosticCode.UNMAPPED_COMPONENT]
    assert result.errors == ()
    score = result.records[0].subject_scores["english"]
    assert score.components == {"UT1": 8, "ANNUAL": None}
    assert score.total == 8


def test_mapped_column_missing_from_sheet(mini_schema, make_grid, student_row):
    mappings = {**mini_schema.column_mappings, "english": {"UT1": "ENG_UT1", "ANNUAL": "ENG_FINAL"}}
    schema = dataclasses.replace(mini_schema, column_mappings=mappings)
    result = parse(make_grid(student_row()), schema)

    assert _codes(result.errors) == [DiagnosticCode.COLUMN_NOT_FOUND]
    assert result.errors[0].field == "english.ANNUAL"
    assert result.records[0].subject_scores["english"].components["ANNUAL"] is None


def test_blocking_row_does_not_stop_later_rows(mini_schema, make_grid, student_row):
    result = parse(make_grid(student_row(math=("x", 1, 1)), student_row(roll=2, name="Isha Verma")), mini_schema)
    assert [r.has_blocking_errors for r in result.records] == [True, False]
    assert [r.row_number for r in result.records] == [2, 3]
    assert len(result.valid_records) == 1
    assert len(result.blocked_records) == 1


def test_header_row_skips_title_lines(mini_schema, make_grid, student_row):
    grid = [["Class 9 Marks 2024-25"], *make_grid(student_row())]
    result = parse(grid, mini_schema, header_row=2)
    assert result.errors == ()
    assert result.records[0].row_number == 3


def test_co_scholastic_values(mini_schema, make_grid, student_row):
    schema = dataclasses.replace(
        mini_schema,
        co_scholastic_fields={
            "discipline": IdentityField("Discipline Grade", "CO_DISCIPLINE"),
            "art_education": IdentityField("Art Education Grade", "CO_ART_ED"),
        },
    )
    headers = [*make_grid()[0], "CO_DISCIPLINE"]
    result = parse(make_grid([*student_row(), " A "], headers=headers), schema)
    assert result.records[0].co_scholastic == {"discipline": "A", "art_education": None}
    assert result.errors == ()
    assert result.warnings == ()


def test_structural_failures_are_single_global_errors(mini_schema, make_grid):
    empty = parse([], mini_schema)
    assert empty.records == ()
    assert len(empty.errors) == 1
    assert empty.errors[0].row == GLOBAL_ROW
    assert empty.errors[0].code is DiagnosticCode.STRUCTURAL_ERROR
    assert empty.is_structural_failure

    header_only = parse(make_grid(), mini_schema)
    assert header_only.records == ()
    assert header_only.errors[0].message == "No data rows found after the header row."

    single_column = parse([["ROLL_NO"], ["1"], ["2"]], mini_schema)
    assert single_column.records == ()
    assert _codes(single_column.errors) == [DiagnosticCode.STRUCTURAL_ERROR]
    assert single_column.errors[0].row == GLOBAL_ROW


def test_parse_is_idempotent(mini_schema, make_grid, student_row):
    grid = make_grid(student_row(math=(10, "AB", 12)), student_row(roll=2, bio=(1, 2, 3)))
    assert parse(grid, mini_schema) == parse(grid, mini_schema)


def test_orientation_symmetry(mini_schema, make_grid, student_row):
    grid = make_grid(
        student_row(math=(10, "AB", 12)),
        student_row(roll=2, name="Isha Verma", math=("", "", ""), bio=(7, 8, 9)),
        student_row(roll=3, name="", eng=("", "")),
    )
    by_rows = parse(grid, mini_schema, Orientation.ROWS)
    by_columns = parse(_transpose(grid), mini_schema, Orientation.COLUMNS)

    assert by_rows.records == by_columns.records

    def strip_cell(diagnostics):
        return [(d.row, d.field, d.code, d.message) for d in diagnostics]

    assert strip_cell(by_rows.errors) == strip_cell(by_columns.errors)
    assert strip_cell(by_rows.warnings) == strip_cell(by_columns.warnings)


def test_cell_refs_follow_the_original_layout(mini_schema, make_grid, student_row):
    grid = make_grid(student_row(math=(10, "AB", 8)))
    by_columns = parse(_transpose(grid), mini_schema, Orientation.COLUMNS)
    # MATH_T2 is the 7th field name, the student sits in column B
    assert by_columns.warnings[0].cell == "B7"
    assert by_columns.warnings[0].locus == "row 2 (B7)"
