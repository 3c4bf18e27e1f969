import math

import pytest

from results_engine.models import Division, EducationLevel, Grade
from results_engine.utils.grade_utils import (
    GradingConfigurationError,
    division_from_points,
    get_remarks,
    grade_and_points,
    is_passed,
    o_level_grading_scale,
    points_for_grade,
)

DIVISION_ORDER = [Division.I, Division.II, Division.III, Division.IV, Division.ZERO]


@pytest.mark.parametrize(
    "marks,expected",
    [
        (100, (Grade.A, 1)),
        (75, (Grade.A, 1)),
        (74.99, (Grade.B, 2)),
        (65, (Grade.B, 2)),
        (64, (Grade.C, 3)),
        (45, (Grade.C, 3)),
        (44.5, (Grade.D, 4)),
        (32, (Grade.D, 4)),
        (30, (Grade.D, 4)),
        (29, (Grade.F, 5)),
        (0, (Grade.F, 5)),
    ],
)
def test_o_level_boundaries(marks, expected):
    assert grade_and_points(marks, EducationLevel.O_LEVEL) == expected


@pytest.mark.parametrize(
    "marks,expected",
    [
        (85, (Grade.A, 1)),
        (80, (Grade.A, 1)),
        (79, (Grade.B, 2)),
        (70, (Grade.B, 2)),
        (60, (Grade.C, 3)),
        (50, (Grade.D, 4)),
        (40, (Grade.E, 5)),
        (39.5, (Grade.S, 6)),
        (35, (Grade.S, 6)),
        (34, (Grade.F, 7)),
        (0, (Grade.F, 7)),
    ],
)
def test_a_level_boundaries(marks, expected):
    assert grade_and_points(marks, EducationLevel.A_LEVEL) == expected


@pytest.mark.parametrize("marks", [None, float("nan"), "abc", "", "AA"])
def test_missing_marks_return_sentinel(marks):
    assert grade_and_points(marks, EducationLevel.A_LEVEL) == (Grade.NOT_GRADED, 0)
    assert grade_and_points(marks, EducationLevel.O_LEVEL) == (Grade.NOT_GRADED, 0)


def test_numeric_strings_are_graded():
    assert grade_and_points("82", "A_LEVEL") == (Grade.A, 1)


def test_out_of_range_marks_fall_into_nearest_band():
    assert grade_and_points(120, EducationLevel.A_LEVEL) == (Grade.A, 1)
    assert grade_and_points(-5, EducationLevel.A_LEVEL) == (Grade.F, 7)
    assert grade_and_points(-5, EducationLevel.O_LEVEL) == (Grade.F, 5)


@pytest.mark.parametrize("level", [EducationLevel.O_LEVEL, EducationLevel.A_LEVEL])
def test_points_never_improve_as_marks_drop(level):
    previous_points = 0
    for tenths in range(1000, -1, -1):
        _, points = grade_and_points(tenths / 10, level)
        assert points >= previous_points
        previous_points = points


@pytest.mark.parametrize("level", [EducationLevel.O_LEVEL, EducationLevel.A_LEVEL])
def test_regrading_from_marks_is_stable(level):
    for marks in range(0, 101):
        grade, points = grade_and_points(marks, level)
        assert grade_and_points(marks, level) == (grade, points)
        assert points_for_grade(grade, level) == points


def test_o_level_credit_boundary_is_configurable():
    assert grade_and_points(47, EducationLevel.O_LEVEL) == (Grade.C, 3)
    assert grade_and_points(47, EducationLevel.O_LEVEL, credit_boundary=50) == (Grade.D, 4)
    assert o_level_grading_scale(50)[2] == (50.0, Grade.C, 3)


def test_o_level_credit_boundary_outside_neighbours_is_rejected():
    with pytest.raises(GradingConfigurationError):
        grade_and_points(47, EducationLevel.O_LEVEL, credit_boundary=70)


def test_unknown_education_level_raises():
    with pytest.raises(GradingConfigurationError):
        grade_and_points(50, "DIPLOMA")
    with pytest.raises(GradingConfigurationError):
        division_from_points(10, "DIPLOMA")


def test_remarks():
    assert get_remarks(Grade.A, EducationLevel.A_LEVEL) == "Excellent"
    assert get_remarks(Grade.S, EducationLevel.A_LEVEL) == "Subsidiary Pass"
    assert get_remarks(Grade.D, EducationLevel.O_LEVEL) == "Satisfactory"
    assert get_remarks(Grade.NOT_GRADED, EducationLevel.O_LEVEL) == "-"
    assert get_remarks("Z", EducationLevel.O_LEVEL) == "-"


def test_points_for_grade():
    assert points_for_grade("F", EducationLevel.A_LEVEL) == 7
    assert points_for_grade("F", EducationLevel.O_LEVEL) == 5
    assert points_for_grade(Grade.S, EducationLevel.O_LEVEL) == 0
    assert points_for_grade("-", EducationLevel.A_LEVEL) == 0


def test_is_passed():
    assert is_passed(Grade.E, EducationLevel.A_LEVEL, is_principal=True)
    assert not is_passed(Grade.S, EducationLevel.A_LEVEL, is_principal=True)
    assert is_passed(Grade.S, EducationLevel.A_LEVEL, is_principal=False)
    assert is_passed(Grade.D, EducationLevel.O_LEVEL)
    assert not is_passed(Grade.F, EducationLevel.O_LEVEL)
    assert not is_passed(Grade.NOT_GRADED, EducationLevel.A_LEVEL)


@pytest.mark.parametrize(
    "points,expected",
    [
        (3, Division.I),
        (6, Division.I),
        (9, Division.I),
        (10, Division.II),
        (12, Division.II),
        (13, Division.III),
        (17, Division.III),
        (18, Division.IV),
        (19, Division.IV),
        (20, Division.ZERO),
        (21, Division.ZERO),
        (2, Division.ZERO),
        (-1, Division.ZERO),
        (None, Division.ZERO),
        (math.nan, Division.ZERO),
    ],
)
def test_a_level_divisions(points, expected):
    assert division_from_points(points, EducationLevel.A_LEVEL) == expected


@pytest.mark.parametrize(
    "points,expected",
    [
        (7, Division.I),
        (17, Division.I),
        (18, Division.II),
        (21, Division.II),
        (22, Division.III),
        (25, Division.III),
        (26, Division.IV),
        (33, Division.IV),
        (34, Division.ZERO),
        (None, Division.ZERO),
    ],
)
def test_o_level_divisions(points, expected):
    assert division_from_points(points, EducationLevel.O_LEVEL) == expected


@pytest.mark.parametrize(
    "level,lowest,highest",
    [(EducationLevel.A_LEVEL, 3, 21), (EducationLevel.O_LEVEL, 7, 35)],
)
def test_divisions_are_monotonic_in_points(level, lowest, highest):
    totals = [lowest + step / 2 for step in range(2 * (highest - lowest) + 1)]
    badness = [DIVISION_ORDER.index(division_from_points(p, level)) for p in totals]
    assert badness == sorted(badness)


@pytest.mark.parametrize(
    "points,level,expected",
    [
        (9.5, EducationLevel.A_LEVEL, Division.II),
        (12.5, EducationLevel.A_LEVEL, Division.III),
        (19.5, EducationLevel.A_LEVEL, Division.ZERO),
        (17.5, EducationLevel.O_LEVEL, Division.II),
        (25.5, EducationLevel.O_LEVEL, Division.IV),
        (33.5, EducationLevel.O_LEVEL, Division.ZERO),
    ],
)
def test_fractional_totals_between_bands(points, level, expected):
    assert division_from_points(points, level) == expected
