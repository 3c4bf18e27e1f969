import pytest

from results_engine.config import DivisionPolicy, Settings
from results_engine.models import Division, EducationLevel
from results_engine.services.result_processing import ResultProcessingService
from results_engine.services.subject_selection import SubjectSelector
from results_engine.utils.grade_utils import GradingConfigurationError


@pytest.fixture
def a_level_selector():
    return SubjectSelector(Settings().division_policy(EducationLevel.A_LEVEL))


@pytest.fixture
def graded(make_result):
    def _graded(student_id, subject_id, marks, **kwargs):
        return ResultProcessingService.grade_result(make_result(student_id, subject_id, marks, **kwargs))

    return _graded


def test_best_three_principal_points_six_is_division_one(a_level_selector, graded):
    results = [
        graded("s1", "physics", 85, is_principal=True),
        graded("s1", "chemistry", 72, is_principal=True),
        graded("s1", "maths", 63, is_principal=True),
        graded("s1", "gs", 90, subject_name="General Studies"),
    ]
    selection = a_level_selector.select(results)
    assert selection.best_points == 6
    assert selection.division == Division.I
    assert selection.principal_source == "flag"
    assert [r.subject_id for r in selection.best_results] == ["physics", "chemistry", "maths"]


def test_fewer_than_three_qualifying_is_not_computed(a_level_selector, graded):
    results = [
        graded("s1", "physics", 85, is_principal=True),
        graded("s1", "chemistry", None, is_principal=True),
        graded("s1", "maths", 0, is_principal=True),
    ]
    selection = a_level_selector.select(results)
    assert selection.division == Division.NOT_COMPUTED
    assert selection.division != Division.ZERO
    assert selection.best_points is None
    assert selection.qualifying_count == 1
    assert not selection.is_computed
    assert selection.warnings


def test_failing_but_computed_is_division_zero(a_level_selector, graded):
    results = [graded("s1", subject, 20, is_principal=True) for subject in ("physics", "chemistry", "maths")]
    selection = a_level_selector.select(results)
    assert selection.best_points == 21
    assert selection.division == Division.ZERO


def test_general_studies_excluded_even_when_principal(a_level_selector, graded):
    results = [
        graded("s1", "physics", 85, is_principal=True),
        graded("s1", "chemistry", 75, is_principal=True),
        graded("s1", "gs", 95, is_principal=True, subject_name="GENERAL STUDIES"),
    ]
    selection = a_level_selector.select(results)
    assert selection.division == Division.NOT_COMPUTED
    assert selection.qualifying_count == 2


def test_combination_ids_take_priority_over_flags(a_level_selector, graded):
    results = [
        graded("s1", "physics", 40, is_principal=True),
        graded("s1", "history", 85),
        graded("s1", "geography", 82),
        graded("s1", "english", 81),
    ]
    selection = a_level_selector.select(results, principal_subject_ids=["history", "geography", "english"])
    assert selection.principal_source == "combination"
    assert selection.best_points == 3
    assert selection.division == Division.I


def test_unmatched_combination_ids_fall_back_to_flags(a_level_selector, graded):
    results = [graded("s1", subject, 72, is_principal=True) for subject in ("physics", "chemistry", "maths")]
    selection = a_level_selector.select(results, principal_subject_ids=["unknown"])
    assert selection.principal_source == "flag"
    assert selection.best_points == 6


def test_no_principal_subjects_uses_best_results_fallback(a_level_selector, graded, caplog):
    results = [
        graded("s1", "physics", 30),
        graded("s1", "chemistry", 85),
        graded("s1", "maths", 75),
        graded("s1", "biology", None),
        graded("s1", "english", 65),
    ]
    with caplog.at_level("WARNING"):
        selection = a_level_selector.select(results)
    assert selection.principal_source == "fallback"
    assert [r.subject_id for r in selection.best_results] == ["chemistry", "maths", "english"]
    assert selection.best_points == 6
    assert "fallback" in caplog.text


def test_picks_lowest_points_first(a_level_selector, graded):
    marks = {"a": 45, "b": 82, "c": 36, "d": 71, "e": 65}
    results = [graded("s1", subject, value, is_principal=True) for subject, value in marks.items()]
    selection = a_level_selector.select(results)
    assert [r.subject_id for r in selection.best_results] == ["b", "d", "e"]
    assert selection.best_points == 1 + 2 + 3


def test_o_level_best_seven(graded):
    selector = SubjectSelector(Settings().division_policy(EducationLevel.O_LEVEL))
    marks = [80, 78, 70, 66, 50, 47, 46, 20, 10]
    results = [graded("s1", f"sub{i}", m, level=EducationLevel.O_LEVEL) for i, m in enumerate(marks)]
    selection = selector.select(results)
    assert len(selection.best_results) == 7
    assert selection.best_points == 1 + 1 + 2 + 2 + 3 + 3 + 3
    assert selection.division == Division.I


def test_o_level_fewer_than_seven_not_computed(graded):
    selector = SubjectSelector(Settings().division_policy(EducationLevel.O_LEVEL))
    results = [graded("s1", f"sub{i}", 80, level=EducationLevel.O_LEVEL) for i in range(6)]
    assert selector.select(results).division == Division.NOT_COMPUTED


@pytest.mark.parametrize("best_n,min_qualifying", [(0, 0), (3, 4), (3, 0)])
def test_invalid_policy_rejected(best_n, min_qualifying):
    policy = DivisionPolicy(
        education_level=EducationLevel.A_LEVEL, best_n=best_n, min_qualifying=min_qualifying
    )
    with pytest.raises(GradingConfigurationError):
        SubjectSelector(policy)
