"""Utility functions for calculating class statistics."""

import statistics
from collections import Counter
from typing import Sequence

EMPTY_STATISTICS: dict[str, float] = {
    "mean": 0.0,
    "median": 0.0,
    "mode": 0.0,
    "standard_deviation": 0.0,
}


def calculate_mode(data: Sequence[float]) -> float:
    """
    Most frequent value; ties go to the smallest value.

    Returns 0.0 for an empty sequence.
    """
    if not data:
        return 0.0

    frequency = Counter(data)
    max_frequency = max(frequency.values())
    return min(value for value, count in frequency.items() if count == max_frequency)


def calculate_statistics(data: Sequence[float]) -> dict[str, float]:
    """
    Calculate class statistics for a set of marks.

    Args:
        data: Sequence of numeric marks (absent marks already removed)

    Returns:
        Dictionary with mean, median, mode and population standard_deviation,
        each rounded to 2 decimal places. All zeros for an empty sequence.
    """
    if not data:
        return dict(EMPTY_STATISTICS)

    values = [float(value) for value in data]

    mean = statistics.fmean(values)
    median = statistics.median(values)
    mode = calculate_mode(values)
    std_dev = statistics.pstdev(values, mu=mean)

    return {
        "mean": round(mean, 2),
        "median": round(median, 2),
        "mode": round(mode, 2),
        "standard_deviation": round(std_dev, 2),
    }


def calculate_summary_statistics(data: Sequence[float]) -> dict[str, float | int]:
    """calculate_statistics plus count, highest and lowest."""
    result: dict[str, float | int] = dict(calculate_statistics(data))
    result["count"] = len(data)
    result["highest"] = round(float(max(data)), 2) if data else 0.0
    result["lowest"] = round(float(min(data)), 2) if data else 0.0
    return result


def calculate_percentage(count: int, total: int) -> float:
    """count / total * 100 rounded to 2 places, 0.0 when total is zero."""
    if not total:
        return 0.0
    return round(count / total * 100, 2)
