from __future__ import annotations

import pytest

from reportcards.models.template import Division
from reportcards.services.grading import division_for, grade_for, percentage_of, remark_for

DIVISIONS = (Division("I", 60), Division("II", 48), Division("III", 36))


@pytest.mark.parametrize(
    ("percentage", "grade"),
    [
        (100, "A1"),
        (91, "A1"),
        (90.99, "A2"),
        (81, "A2"),
        (80.99, "B1"),
        (71, "B1"),
        (61, "B2"),
        (51, "C1"),
        (41, "C2"),
        (33, "D"),
        (32.99, "E"),
        (0, "E"),
    ],
)
def test_grade_ladder_boundaries(percentage, grade):
    assert grade_for(percentage) == grade


def test_remark_ladder():
    assert remark_for(91) == "Outstanding"
    assert remark_for(75) == "Very Good"
    assert remark_for(33) == "Needs Improvement"
    assert remark_for(10) == "Poor"


@pytest.mark.parametrize(
    ("percentage", "division"),
    [
        (60, "I"),
        (59.99, "II"),
        (48, "II"),
        (47.99, "III"),
        (36, "III"),
        (35.99, None),
    ],
)
def test_division_thresholds_are_inclusive(percentage, division):
    assert division_for(percentage, DIVISIONS) == division


def test_division_order_is_not_resorted():
    ascending = (Division("III", 36), Division("I", 60))
    assert division_for(75, ascending) == "III"


def test_percentage_of():
    assert percentage_of(102, 130) == 78.46
    assert percentage_of(1, 3) == 33.33
    assert percentage_of(5, 0) == 0.0
