"""Grading scales, remarks and division boundaries for NECTA CSEE (O-Level) and ACSEE (A-Level)."""

import logging
import math
from functools import lru_cache
from typing import Any

from results_engine.models import Division, EducationLevel, Grade
from results_engine.utils.score_utils import get_numeric_marks

logger = logging.getLogger(__name__)

# (min_marks, grade, points), highest band first
GradingScale = tuple[tuple[float, Grade, int], ...]

DEFAULT_O_LEVEL_CREDIT_BOUNDARY = 45.0

A_LEVEL_GRADING_SCALE: GradingScale = (
    (80.0, Grade.A, 1),
    (70.0, Grade.B, 2),
    (60.0, Grade.C, 3),
    (50.0, Grade.D, 4),
    (40.0, Grade.E, 5),
    (35.0, Grade.S, 6),
    (0.0, Grade.F, 7),
)

# (min_points, max_points, division), inclusive
O_LEVEL_DIVISIONS: tuple[tuple[int, int, Division], ...] = (
    (7, 17, Division.I),
    (18, 21, Division.II),
    (22, 25, Division.III),
    (26, 33, Division.IV),
)

A_LEVEL_DIVISIONS: tuple[tuple[int, int, Division], ...] = (
    (3, 9, Division.I),
    (10, 12, Division.II),
    (13, 17, Division.III),
    (18, 19, Division.IV),
)

O_LEVEL_REMARKS: dict[Grade, str] = {
    Grade.A: "Excellent",
    Grade.B: "Very Good",
    Grade.C: "Good",
    Grade.D: "Satisfactory",
    Grade.F: "Fail",
}

A_LEVEL_REMARKS: dict[Grade, str] = {
    Grade.A: "Excellent",
    Grade.B: "Very Good",
    Grade.C: "Good",
    Grade.D: "Satisfactory",
    Grade.E: "Pass",
    Grade.S: "Subsidiary Pass",
    Grade.F: "Fail",
}

O_LEVEL_PASS_GRADES = frozenset({Grade.A, Grade.B, Grade.C, Grade.D})
A_LEVEL_PRINCIPAL_PASS_GRADES = frozenset({Grade.A, Grade.B, Grade.C, Grade.D, Grade.E})
A_LEVEL_SUBSIDIARY_PASS_GRADES = A_LEVEL_PRINCIPAL_PASS_GRADES | {Grade.S}


class GradingConfigurationError(Exception):
    """Raised for programming or configuration mistakes, never for bad marks."""

    pass


def resolve_education_level(level: Any) -> EducationLevel:
    """
    Normalize an education level value.

    Accepts EducationLevel members or their string values ("O_LEVEL", "A_LEVEL").

    Raises:
        GradingConfigurationError: If the value is not a known education level
    """
    if isinstance(level, EducationLevel):
        return level
    try:
        return EducationLevel(str(level).strip().upper())
    except ValueError:
        valid_levels = ", ".join(lvl.value for lvl in EducationLevel)
        raise GradingConfigurationError(f"Unknown education level '{level}'. Must be one of: {valid_levels}")


@lru_cache(maxsize=8)
def o_level_grading_scale(credit_boundary: float = DEFAULT_O_LEVEL_CREDIT_BOUNDARY) -> GradingScale:
    """Build the O-Level scale with the given lower bound for grade C."""
    if not 30.0 < credit_boundary < 65.0:
        raise GradingConfigurationError(
            f"O-Level grade C boundary must lie between the D (30) and B (65) boundaries, got {credit_boundary}"
        )
    return (
        (75.0, Grade.A, 1),
        (65.0, Grade.B, 2),
        (float(credit_boundary), Grade.C, 3),
        (30.0, Grade.D, 4),
        (0.0, Grade.F, 5),
    )


def get_grading_scale(
    level: EducationLevel | str, credit_boundary: float = DEFAULT_O_LEVEL_CREDIT_BOUNDARY
) -> GradingScale:
    education_level = resolve_education_level(level)
    if education_level == EducationLevel.A_LEVEL:
        return A_LEVEL_GRADING_SCALE
    return o_level_grading_scale(credit_boundary)


def grade_and_points(
    marks: Any,
    level: EducationLevel | str,
    credit_boundary: float = DEFAULT_O_LEVEL_CREDIT_BOUNDARY,
) -> tuple[Grade, int]:
    """
    Calculate grade and points from marks.

    Args:
        marks: Marks obtained (0-100). None, NaN or non-numeric means no result yet.
        level: Education level selecting the grading scale
        credit_boundary: O-Level lower bound for grade C (ignored for A-Level)

    Returns:
        Tuple of (grade, points). (Grade.NOT_GRADED, 0) when there are no marks.
        Values outside 0-100 fall into the nearest band.

    Raises:
        GradingConfigurationError: If the education level is unknown
    """
    scale = get_grading_scale(level, credit_boundary)

    num_marks = get_numeric_marks(marks)
    if num_marks is None:
        return Grade.NOT_GRADED, 0

    for min_marks, grade, points in scale:
        if num_marks >= min_marks:
            return grade, points

    # Below zero
    _, lowest_grade, lowest_points = scale[-1]
    return lowest_grade, lowest_points


def points_for_grade(grade: Grade | str, level: EducationLevel | str) -> int:
    """Map a grade back to its point value, 0 for the not-graded sentinel or a grade outside the scale."""
    scale = get_grading_scale(level)
    try:
        grade = Grade(grade)
    except ValueError:
        return 0
    for _, scale_grade, points in scale:
        if scale_grade == grade:
            return points
    return 0


def get_remarks(grade: Grade | str, level: EducationLevel | str) -> str:
    education_level = resolve_education_level(level)
    remarks = A_LEVEL_REMARKS if education_level == EducationLevel.A_LEVEL else O_LEVEL_REMARKS
    try:
        return remarks.get(Grade(grade), "-")
    except ValueError:
        return "-"


def is_passed(grade: Grade | str, level: EducationLevel | str, is_principal: bool = True) -> bool:
    """
    Determine if a grade is a pass.

    O-Level passes are A-D. A-Level principal subjects pass on A-E; subsidiary
    subjects also pass on S.
    """
    education_level = resolve_education_level(level)
    try:
        grade = Grade(grade)
    except ValueError:
        return False
    if education_level == EducationLevel.O_LEVEL:
        return grade in O_LEVEL_PASS_GRADES
    if is_principal:
        return grade in A_LEVEL_PRINCIPAL_PASS_GRADES
    return grade in A_LEVEL_SUBSIDIARY_PASS_GRADES


def division_from_points(total_points: Any, level: EducationLevel | str) -> Division:
    """
    Classify a points total into a division.

    A-Level totals come from the best three principal subjects, O-Level totals
    from the best seven subjects. Lower totals are better.

    Returns:
        Division I-IV, or Division.ZERO for totals outside every band
        (including None, NaN and negative values).
    """
    education_level = resolve_education_level(level)
    divisions = A_LEVEL_DIVISIONS if education_level == EducationLevel.A_LEVEL else O_LEVEL_DIVISIONS

    if total_points is None or isinstance(total_points, bool):
        logger.warning(f"Invalid points value for {education_level.value} division calculation: {total_points}")
        return Division.ZERO
    try:
        num_points = float(total_points)
    except (TypeError, ValueError):
        logger.warning(f"Invalid points value for {education_level.value} division calculation: {total_points}")
        return Division.ZERO
    if math.isnan(num_points) or num_points < 0:
        logger.warning(f"Invalid points value for {education_level.value} division calculation: {total_points}")
        return Division.ZERO

    if num_points < divisions[0][0]:
        return Division.ZERO
    # Totals between two bands fall into the worse one
    for _, max_points, division in divisions:
        if num_points <= max_points:
            return division
    return Division.ZERO
