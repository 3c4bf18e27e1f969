"""Service for selecting the best-N results that count toward a student's division."""

import logging
from collections.abc import Collection, Sequence

from results_engine.config import DivisionPolicy
from results_engine.models import Division, Grade
from results_engine.schemas.result import GradedResult, SelectionResult
from results_engine.utils.grade_utils import GradingConfigurationError, division_from_points
from results_engine.utils.score_utils import has_marks

logger = logging.getLogger(__name__)

PRINCIPAL_SOURCE_COMBINATION = "combination"
PRINCIPAL_SOURCE_FLAG = "flag"
PRINCIPAL_SOURCE_FALLBACK = "fallback"
PRINCIPAL_SOURCE_ALL = "all"


def validate_policy(policy: DivisionPolicy) -> None:
    """Raise GradingConfigurationError for a policy that can never select correctly."""
    if policy.best_n < 1:
        raise GradingConfigurationError(f"best_n must be at least 1, got {policy.best_n}")
    if policy.min_qualifying < 1 or policy.min_qualifying > policy.best_n:
        raise GradingConfigurationError(
            f"min_qualifying must be between 1 and best_n ({policy.best_n}), got {policy.min_qualifying}"
        )


def _points_sort_key(result: GradedResult) -> tuple[int, str]:
    # Not-graded results carry 0 points but must sort last
    points = result.points if result.grade != Grade.NOT_GRADED else 10**6
    return points, result.subject_id


class SubjectSelector:
    """Picks the best-N results for division and points aggregation."""

    def __init__(self, policy: DivisionPolicy):
        validate_policy(policy)
        self.policy = policy

    def find_principal_results(
        self,
        results: Sequence[GradedResult],
        principal_subject_ids: Collection[str] | None = None,
    ) -> tuple[list[GradedResult], str]:
        """
        Find principal results, in priority order.

        1. Results whose subject id is in principal_subject_ids
        2. Results flagged is_principal
        3. Fallback: the best_n lowest-point results overall

        Returns:
            Tuple of (principal_results, source)
        """
        if principal_subject_ids:
            wanted = {str(subject_id) for subject_id in principal_subject_ids}
            principal_results = [result for result in results if result.subject_id in wanted]
            logger.debug(f"Found {len(principal_results)} principal subjects using provided IDs")
            if principal_results:
                return principal_results, PRINCIPAL_SOURCE_COMBINATION

        principal_results = [result for result in results if result.is_principal]
        logger.debug(f"Found {len(principal_results)} principal subjects using isPrincipal flag")
        if principal_results:
            return principal_results, PRINCIPAL_SOURCE_FLAG

        if not results:
            return [], PRINCIPAL_SOURCE_FALLBACK

        student_id = results[0].student_id
        logger.warning(
            f"No principal subjects found for student {student_id}. "
            f"Using best {self.policy.best_n} subjects as fallback."
        )
        fallback = sorted(results, key=_points_sort_key)[: self.policy.best_n]
        return fallback, PRINCIPAL_SOURCE_FALLBACK

    def is_excluded(self, result: GradedResult) -> bool:
        subject_name = result.subject_name.lower()
        return any(marker in subject_name for marker in self.policy.excluded_subjects)

    def select(
        self,
        results: Sequence[GradedResult],
        principal_subject_ids: Collection[str] | None = None,
    ) -> SelectionResult:
        """
        Select the best-N qualifying results and classify the division.

        Fewer than min_qualifying qualifying results means the division is not
        computed (Division.NOT_COMPUTED and best_points None), which is distinct
        from a computed failing Division.ZERO.
        """
        if self.policy.principal_only:
            candidates, source = self.find_principal_results(results, principal_subject_ids)
        else:
            candidates, source = list(results), PRINCIPAL_SOURCE_ALL

        candidates = [result for result in candidates if not self.is_excluded(result)]

        qualifying = [
            result
            for result in candidates
            if has_marks(result.marks_obtained) and result.grade != Grade.NOT_GRADED
        ]
        ranked = sorted(qualifying, key=_points_sort_key)
        best_results = ranked[: self.policy.best_n]

        if len(qualifying) < self.policy.min_qualifying:
            warning = (
                f"Only {len(qualifying)} qualifying subjects with marks. "
                f"At least {self.policy.min_qualifying} are required for division calculation."
            )
            logger.debug(warning)
            return SelectionResult(
                best_results=best_results,
                best_points=None,
                division=Division.NOT_COMPUTED,
                qualifying_count=len(qualifying),
                principal_source=source,
                warnings=[warning],
            )

        best_points = sum(result.points for result in best_results)
        division = division_from_points(best_points, self.policy.education_level)

        logger.debug(
            f"{self.policy.education_level.value} division calculation: "
            f"candidates={len(candidates)}, qualifying={len(qualifying)}, "
            f"best={[(r.subject_name or r.subject_id, r.grade.value, r.points) for r in best_results]}, "
            f"points={best_points}, division={division.value}"
        )

        return SelectionResult(
            best_results=best_results,
            best_points=best_points,
            division=division,
            qualifying_count=len(qualifying),
            principal_source=source,
        )
