"""Service for grading subject results and building per-student summaries."""

import logging
from collections.abc import Collection, Sequence

from results_engine.config import Settings, settings as default_settings
from results_engine.models import Division, EducationLevel, Grade
from results_engine.schemas.report import StudentSummary
from results_engine.schemas.result import GradedResult, SubjectResult
from results_engine.services.subject_selection import SubjectSelector
from results_engine.utils.grade_utils import (
    DEFAULT_O_LEVEL_CREDIT_BOUNDARY,
    get_grading_scale,
    get_remarks,
    grade_and_points,
)

logger = logging.getLogger(__name__)


class ResultProcessingError(Exception):
    """Base exception for result processing errors."""

    pass


class ResultProcessingService:
    """Service for grading results and summarizing a student's exam."""

    @staticmethod
    def grade_result(
        result: SubjectResult, credit_boundary: float = DEFAULT_O_LEVEL_CREDIT_BOUNDARY
    ) -> GradedResult:
        """
        Attach grade, points and remarks to a result.

        The derived fields depend only on marks_obtained and education_level,
        so grading the same result twice always gives the same answer.
        """
        grade, points = grade_and_points(result.marks_obtained, result.education_level, credit_boundary)
        return GradedResult(
            **result.model_dump(),
            grade=grade,
            points=points,
            remarks=get_remarks(grade, result.education_level),
        )

    @staticmethod
    def grade_distribution(results: Sequence[GradedResult], level: EducationLevel) -> dict[str, int]:
        """Count of results per grade on the level's scale; not-graded results are left out."""
        distribution = {grade.value: 0 for _, grade, _ in get_grading_scale(level)}
        for result in results:
            if result.grade != Grade.NOT_GRADED:
                distribution[result.grade.value] = distribution.get(result.grade.value, 0) + 1
        return distribution

    @staticmethod
    def subject_count_warnings(
        results: Sequence[GradedResult],
        level: EducationLevel,
        settings: Settings,
        principal_subject_ids: Collection[str] | None = None,
    ) -> list[str]:
        """Informational warnings about missing core or subsidiary subjects; never change the division."""
        sat = [result for result in results if result.marks_obtained is not None]
        warnings: list[str] = []

        if level == EducationLevel.O_LEVEL:
            codes = {result.subject_code.upper() for result in sat if result.subject_code}
            if codes:
                missing = [code for code in settings.o_level_core_subjects if code.upper() not in codes]
                if missing:
                    warnings.append(f"Student is missing {len(missing)} core subjects: {', '.join(missing)}")
            return warnings

        if principal_subject_ids:
            principal_ids = {str(subject_id) for subject_id in principal_subject_ids}
            subsidiary = [result for result in sat if result.subject_id not in principal_ids]
        else:
            subsidiary = [result for result in sat if not result.is_principal]
        if len(subsidiary) < settings.a_level_min_subsidiary:
            warnings.append(
                f"Student has only {len(subsidiary)} subsidiary subjects. "
                f"At least {settings.a_level_min_subsidiary} subsidiary subjects are recommended."
            )
        return warnings

    @staticmethod
    def build_student_summary(
        student_id: str,
        results: Sequence[SubjectResult],
        settings: Settings = default_settings,
        principal_subject_ids: Collection[str] | None = None,
        combination_missing: bool = False,
    ) -> StudentSummary:
        """
        Build a student's summary from their full result set for one exam.

        Args:
            student_id: The student the results belong to
            results: All of the student's results for the exam
            settings: Grading settings
            principal_subject_ids: The student's principal subjects from their combination, if known
            combination_missing: True when a combinations lookup was supplied but had no entry for the student

        Returns:
            StudentSummary without rank or subject positions (those need the whole class)

        Raises:
            ResultProcessingError: If results belong to another student or mix education levels
        """
        if not results:
            raise ResultProcessingError(f"No results supplied for student {student_id}")

        foreign = {result.student_id for result in results if result.student_id != student_id}
        if foreign:
            raise ResultProcessingError(f"Results for student {student_id} include other students: {sorted(foreign)}")

        levels = {result.education_level for result in results}
        if len(levels) > 1:
            raise ResultProcessingError(
                f"Results for student {student_id} mix education levels: {sorted(lvl.value for lvl in levels)}"
            )
        level = levels.pop()

        graded = [
            ResultProcessingService.grade_result(result, settings.o_level_credit_boundary) for result in results
        ]

        marks = [result.marks_obtained for result in graded if result.marks_obtained is not None]
        total_marks = sum(marks)
        average_marks = round(total_marks / len(marks), 2) if marks else None
        total_points = sum(result.points for result in graded if result.grade != Grade.NOT_GRADED)

        summary = StudentSummary(
            student_id=student_id,
            education_level=level,
            results=graded,
            total_marks=round(total_marks, 2),
            average_marks=average_marks,
            total_points=total_points,
            grade_distribution=ResultProcessingService.grade_distribution(graded, level),
        )

        if combination_missing and settings.require_subject_combination:
            logger.warning(f"No subject combination found for student {student_id}; division not computed")
            return summary.model_copy(
                update={
                    "division": Division.NOT_COMPUTED,
                    "error": f"No subject combination found for student {student_id}",
                }
            )

        selector = SubjectSelector(settings.division_policy(level))
        selection = selector.select(graded, principal_subject_ids)

        warnings = list(selection.warnings)
        warnings.extend(
            ResultProcessingService.subject_count_warnings(graded, level, settings, principal_subject_ids)
        )

        return summary.model_copy(
            update={
                "best_n_points": selection.best_points,
                "best_n_results": selection.best_results,
                "division": selection.division,
                "warnings": warnings,
            }
        )
