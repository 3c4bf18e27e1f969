"""Competition ("1224") ranking for class ranks and subject positions."""

from collections.abc import Hashable, Iterable, Mapping

from results_engine.models import RankDirection


def competition_rank(
    items: Iterable[tuple[Hashable, float]],
    direction: RankDirection = RankDirection.DESCENDING,
) -> dict[Hashable, int]:
    """
    Rank items by metric; tied metrics share a rank and the next rank skips by the tie size.

    Args:
        items: (id, metric) pairs. Ids must be unique.
        direction: DESCENDING when higher is better (marks), ASCENDING when
            lower is better (points)

    Returns:
        Dictionary mapping each id to its rank. The result depends only on the
        metrics, never on input order; ids are a secondary sort key so
        iteration order of the returned dict is deterministic too.
    """
    pairs = list(items)
    ids = [item_id for item_id, _ in pairs]
    if len(ids) != len(set(ids)):
        raise ValueError("Ranking ids must be unique")

    if direction == RankDirection.DESCENDING:
        ordered = sorted(pairs, key=lambda pair: (-pair[1], str(pair[0])))
    else:
        ordered = sorted(pairs, key=lambda pair: (pair[1], str(pair[0])))

    ranks: dict[Hashable, int] = {}
    current_rank = 0
    previous_metric: float | None = None
    for index, (item_id, metric) in enumerate(ordered):
        if index == 0 or metric != previous_metric:
            current_rank = index + 1
        ranks[item_id] = current_rank
        previous_metric = metric

    return ranks


def subject_positions(
    marks_by_subject: Mapping[str, Mapping[str, float]],
) -> dict[str, dict[str, int]]:
    """
    Rank students within each subject by marks, highest first.

    Args:
        marks_by_subject: {subject_id: {student_id: marks}} holding only
            students who sat the subject

    Returns:
        {subject_id: {student_id: position}}
    """
    return {
        subject_id: competition_rank(student_marks.items(), RankDirection.DESCENDING)
        for subject_id, student_marks in marks_by_subject.items()
    }


def invert_positions(positions: Mapping[str, Mapping[str, int]]) -> dict[str, dict[str, int]]:
    """Turn {subject_id: {student_id: position}} into {student_id: {subject_id: position}}."""
    by_student: dict[str, dict[str, int]] = {}
    for subject_id, student_positions in positions.items():
        for student_id, position in student_positions.items():
            by_student.setdefault(student_id, {})[subject_id] = position
    return by_student
