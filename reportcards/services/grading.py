from __future__ import annotations

from collections.abc import Sequence

from ..models.template import Division

"""Percentage -> grade / remark ladders and division lookup.

The same ladder grades individual subjects and the overall percentage.
Bucket boundaries are inclusive lower bounds.
"""

__all__ = [
    "GRADE_LADDER",
    "REMARK_LADDER",
    "grade_for",
    "remark_for",
    "division_for",
    "percentage_of",
]

GRADE_LADDER: tuple[tuple[float, str], ...] = (
    (91, "A1"),
    (81, "A2"),
    (71, "B1"),
    (61, "B2"),
    (51, "C1"),
    (41, "C2"),
    (33, "D"),
)
LOWEST_GRADE = "E"

REMARK_LADDER: tuple[tuple[float, str], ...] = (
    (91, "Outstanding"),
    (81, "Excellent"),
    (71, "Very Good"),
    (61, "Good"),
    (51, "Average"),
    (41, "Below Average"),
    (33, "Needs Improvement"),
)
LOWEST_REMARK = "Poor"


def _ladder(percentage: float, ladder: Sequence[tuple[float, str]], lowest: str) -> str:
    for floor, label in ladder:
        if percentage >= floor:
            return label
    return lowest


def grade_for(percentage: float) -> str:
    return _ladder(percentage, GRADE_LADDER, LOWEST_GRADE)


def remark_for(percentage: float) -> str:
    return _ladder(percentage, REMARK_LADDER, LOWEST_REMARK)


def division_for(percentage: float, divisions: Sequence[Division]) -> str | None:
    """First division whose threshold the percentage meets or exceeds.

    divisions are expected highest-threshold first; they are not re-sorted.
    """
    for division in divisions:
        if percentage >= division.threshold:
            return division.name
    return None


def percentage_of(obtained: float, maximum: float) -> float:
    """obtained / maximum as a percentage rounded to 2 decimals (0 when maximum is 0)."""
    if maximum <= 0:
        return 0.0
    return round(obtained / maximum * 100, 2)
