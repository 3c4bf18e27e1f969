"""Service for aggregating a class's exam results into a cohort report."""

import logging
from collections.abc import Collection, Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from results_engine.config import Settings, settings as default_settings
from results_engine.models import (
    PASSING_DIVISIONS,
    Division,
    EducationLevel,
    Grade,
    RankDirection,
    RankingMetric,
)
from results_engine.schemas.report import ClassStatistics, CohortReport, StudentSummary, SubjectPerformance
from results_engine.schemas.result import GradedResult, SubjectResult
from results_engine.services.result_processing import ResultProcessingService
from results_engine.utils.grade_utils import (
    GradingConfigurationError,
    get_grading_scale,
    is_passed,
    points_for_grade,
    resolve_education_level,
)
from results_engine.utils.rank_utils import competition_rank, invert_positions, subject_positions
from results_engine.utils.statistics_utils import calculate_percentage, calculate_summary_statistics

logger = logging.getLogger(__name__)

PRINCIPAL_SUBJECT_TYPE = "PRINCIPAL"


class CohortAggregationError(Exception):
    """Raised when raw rows cannot be turned into subject results."""

    pass


def calculate_subject_gpa(grade_distribution: Mapping[str, int], total_students: int, level: EducationLevel) -> float:
    """
    Subject GPA = sum(count of grade x grade points) / students with a result in the subject.

    Lower is better, matching the points scale.
    """
    if not total_students:
        return 0.0
    total_points = sum(count * points_for_grade(grade, level) for grade, count in grade_distribution.items())
    return round(total_points / total_students, 2)


def calculate_subject_pass_rate(
    grade_distribution: Mapping[str, int],
    total_students: int,
    level: EducationLevel,
    is_principal: bool = True,
) -> float:
    """
    Percentage of students with a passing grade.

    A-Level principal subjects pass on A-E, subsidiary subjects also on S.
    O-Level subjects pass on A-D.
    """
    passed = sum(count for grade, count in grade_distribution.items() if is_passed(grade, level, is_principal))
    return calculate_percentage(passed, total_students)


def calculate_examination_gpa(students: Sequence[StudentSummary]) -> float:
    """Average best-N points over students whose division was computed."""
    points = [student.best_n_points for student in students if student.has_division and student.best_n_points is not None]
    if not points:
        return 0.0
    return round(sum(points) / len(points), 2)


def calculate_class_pass_rate(students: Sequence[StudentSummary]) -> float:
    """Percentage of students in divisions I-IV. Division 0 and not computed both count as failing."""
    passed = sum(1 for student in students if student.division in PASSING_DIVISIONS)
    return calculate_percentage(passed, len(students))


def calculate_division_distribution(students: Sequence[StudentSummary]) -> dict[str, int]:
    distribution = {division.value: 0 for division in Division}
    for student in students:
        distribution[student.division.value] += 1
    return distribution


def calculate_class_average(students: Sequence[StudentSummary]) -> float:
    """Mean of the students' average marks, skipping students without marks."""
    averages = [student.average_marks for student in students if student.average_marks is not None]
    if not averages:
        return 0.0
    return round(sum(averages) / len(averages), 2)


class CohortAggregator:
    """Builds a CohortReport from all student x subject results of one class and exam."""

    def __init__(self, settings: Settings = default_settings):
        self.settings = settings

    def _resolve_level(
        self, results: Sequence[SubjectResult], education_level: EducationLevel | str | None
    ) -> EducationLevel:
        levels = {result.education_level for result in results}
        if education_level is not None:
            levels.add(resolve_education_level(education_level))
        if not levels:
            raise GradingConfigurationError("Cannot determine the education level of an empty cohort")
        if len(levels) > 1:
            raise GradingConfigurationError(
                f"A cohort must use one education level, got {sorted(lvl.value for lvl in levels)}"
            )
        return levels.pop()

    @staticmethod
    def _group_by_student(results: Iterable[SubjectResult]) -> dict[str, list[SubjectResult]]:
        grouped: dict[str, dict[str, SubjectResult]] = {}
        for result in results:
            student_results = grouped.setdefault(result.student_id, {})
            if result.subject_id in student_results:
                logger.warning(
                    f"Duplicate result for student {result.student_id} in subject {result.subject_id}; "
                    "keeping the last one"
                )
            student_results[result.subject_id] = result
        return {student_id: list(by_subject.values()) for student_id, by_subject in grouped.items()}

    def _summarize_student(
        self,
        student_id: str,
        results: Sequence[SubjectResult],
        level: EducationLevel,
        principal_subjects: Mapping[str, Collection[str]] | None,
    ) -> StudentSummary:
        principal_subject_ids = None
        combination_missing = False
        if principal_subjects is not None:
            principal_subject_ids = principal_subjects.get(student_id)
            combination_missing = principal_subject_ids is None

        try:
            return ResultProcessingService.build_student_summary(
                student_id,
                results,
                self.settings,
                principal_subject_ids=principal_subject_ids,
                combination_missing=combination_missing,
            )
        except GradingConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Failed to summarize results for student {student_id}: {e}", exc_info=True)
            return StudentSummary(student_id=student_id, education_level=level, error=str(e))

    def _rank_students(self, students: Sequence[StudentSummary]) -> dict[str, int]:
        if self.settings.rank_by == RankingMetric.BEST_N_POINTS:
            items = [(s.student_id, s.best_n_points) for s in students if s.has_division and s.best_n_points is not None]
            return competition_rank(items, RankDirection.ASCENDING)
        items = [(s.student_id, s.average_marks) for s in students if s.average_marks is not None]
        return competition_rank(items, RankDirection.DESCENDING)

    def _subject_reports(
        self,
        students: Sequence[StudentSummary],
        level: EducationLevel,
        principal_subjects: Mapping[str, Collection[str]] | None,
    ) -> tuple[dict[str, ClassStatistics], dict[str, SubjectPerformance]]:
        results_by_subject: dict[str, list[GradedResult]] = {}
        principal_by_subject: dict[str, bool] = {}
        for student in students:
            combination = {str(s) for s in (principal_subjects or {}).get(student.student_id, ())}
            for result in student.results:
                results_by_subject.setdefault(result.subject_id, []).append(result)
                is_principal = (
                    result.is_principal
                    or result.subject_id in combination
                    or (result.subject_type or "").upper() == PRINCIPAL_SUBJECT_TYPE
                )
                principal_by_subject[result.subject_id] = principal_by_subject.get(result.subject_id, False) or is_principal

        statistics_by_subject: dict[str, ClassStatistics] = {}
        performance_by_subject: dict[str, SubjectPerformance] = {}
        for subject_id, results in results_by_subject.items():
            marks = [result.marks_obtained for result in results if result.marks_obtained is not None]
            statistics_by_subject[subject_id] = ClassStatistics(**calculate_summary_statistics(marks))

            graded = [result for result in results if result.grade != Grade.NOT_GRADED]
            distribution = {grade.value: 0 for _, grade, _ in get_grading_scale(level)}
            for result in graded:
                distribution[result.grade.value] += 1

            is_principal = principal_by_subject[subject_id]
            performance_by_subject[subject_id] = SubjectPerformance(
                subject_id=subject_id,
                subject_code=results[0].subject_code,
                subject_name=results[0].subject_name,
                is_principal=is_principal,
                total_students=len(graded),
                grade_distribution=distribution,
                gpa=calculate_subject_gpa(distribution, len(graded), level),
                pass_rate=calculate_subject_pass_rate(distribution, len(graded), level, is_principal),
            )

        return statistics_by_subject, performance_by_subject

    def aggregate(
        self,
        results: Iterable[SubjectResult],
        class_id: str | None = None,
        exam_id: str | None = None,
        principal_subjects: Mapping[str, Collection[str]] | None = None,
        education_level: EducationLevel | str | None = None,
    ) -> CohortReport:
        """
        Grade, summarize, rank and report one class's results for one exam.

        Args:
            results: All student x subject results for the class
            class_id: Class identifier copied onto the report
            exam_id: When given, results tagged with a different exam are ignored
            principal_subjects: Optional {student_id: principal subject ids} from the students' combinations
            education_level: Level of the class; required only when results is empty

        Returns:
            CohortReport with students ordered by rank (unranked students last)

        Raises:
            GradingConfigurationError: For unknown or mixed education levels or an invalid grading policy
        """
        results = list(results)
        if exam_id is not None:
            kept = [result for result in results if result.exam_id is None or result.exam_id == str(exam_id)]
            if len(kept) != len(results):
                logger.debug(f"Ignored {len(results) - len(kept)} results from other exams")
            results = kept

        level = self._resolve_level(results, education_level)

        summaries = [
            self._summarize_student(student_id, student_results, level, principal_subjects)
            for student_id, student_results in self._group_by_student(results).items()
        ]

        marks_by_subject: dict[str, dict[str, float]] = {}
        for summary in summaries:
            for result in summary.results:
                if result.marks_obtained is not None:
                    marks_by_subject.setdefault(result.subject_id, {})[summary.student_id] = result.marks_obtained
        positions_by_student = invert_positions(subject_positions(marks_by_subject))
        ranks = self._rank_students(summaries)

        summaries = [
            summary.model_copy(
                update={
                    "rank": ranks.get(summary.student_id),
                    "subject_positions": positions_by_student.get(summary.student_id, {}),
                }
            )
            for summary in summaries
        ]
        summaries.sort(key=lambda s: (s.rank is None, s.rank or 0, s.student_id))

        statistics_by_subject, performance_by_subject = self._subject_reports(summaries, level, principal_subjects)

        report = CohortReport(
            class_id=None if class_id is None else str(class_id),
            exam_id=None if exam_id is None else str(exam_id),
            education_level=level,
            ranked_by=self.settings.rank_by,
            total_students=len(summaries),
            students=summaries,
            division_distribution=calculate_division_distribution(summaries),
            class_average=calculate_class_average(summaries),
            examination_gpa=calculate_examination_gpa(summaries),
            class_pass_rate=calculate_class_pass_rate(summaries),
            class_statistics_by_subject=statistics_by_subject,
            subject_performance=performance_by_subject,
        )

        logger.info(
            f"Cohort report built for class {class_id} exam {exam_id}: "
            f"{report.total_students} students, {len(statistics_by_subject)} subjects, "
            f"pass rate {report.class_pass_rate}%"
        )
        return report


def build_cohort_report_from_rows(
    rows: Iterable[Mapping[str, Any]],
    class_id: str | None = None,
    exam_id: str | None = None,
    principal_subjects: Mapping[str, Collection[str]] | None = None,
    education_level: EducationLevel | str | None = None,
    settings: Settings = default_settings,
) -> CohortReport:
    """
    Build a cohort report straight from raw result rows.

    Rows may use snake_case or camelCase keys (student_id / studentId, ...).
    Rows without a level inherit education_level. Bad marks never fail a row;
    rows that cannot be placed are skipped and listed in rejected_rows.

    Raises:
        CohortAggregationError: If rows were given but none of them could be placed
        GradingConfigurationError: For unknown or mixed education levels
    """
    results: list[SubjectResult] = []
    errors: list[dict[str, str]] = []

    for idx, row in enumerate(rows):
        data = dict(row)
        if education_level is not None and "education_level" not in data and "educationLevel" not in data:
            data["education_level"] = education_level
        try:
            results.append(SubjectResult.model_validate(data))
        except ValidationError as e:
            error = "; ".join(f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors())
            logger.warning(f"Skipping result row {idx + 1}: {error}")
            errors.append({"row": str(idx + 1), "error": error})

    if errors and not results:
        raise CohortAggregationError(
            f"None of the {len(errors)} result rows could be read: "
            + ", ".join(f"row {error['row']}: {error['error']}" for error in errors)
        )

    report = CohortAggregator(settings).aggregate(
        results,
        class_id=class_id,
        exam_id=exam_id,
        principal_subjects=principal_subjects,
        education_level=education_level,
    )
    return report.model_copy(update={"rejected_rows": errors})
