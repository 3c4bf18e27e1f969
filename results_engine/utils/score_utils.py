"""Utility functions for marks validation and parsing."""

import logging
import math
from typing import Any

logger = logging.getLogger(__name__)

MIN_MARKS = 0.0
MAX_MARKS = 100.0

# Tokens upstream layers use for "no result yet"
ABSENT_TOKENS = ("", "-", "A", "AA", "ABS", "ABSENT", "N/A")


def get_numeric_marks(value: Any) -> float | None:
    """
    Extract a numeric marks value, None if absent or not a number.

    Accepts ints, floats and numeric strings. NaN, infinities, booleans and
    anything that does not parse as a number are treated as absent.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        num_value = float(value)
    else:
        value_str = str(value).strip().upper()
        if value_str in ABSENT_TOKENS:
            return None
        try:
            num_value = float(value_str)
        except ValueError:
            logger.warning(f"Invalid marks value treated as absent: {value!r}")
            return None

    if math.isnan(num_value) or math.isinf(num_value):
        logger.warning(f"Non-finite marks value treated as absent: {value!r}")
        return None

    return num_value


def parse_marks(value: Any) -> float | None:
    """
    Parse and normalize marks at the ingestion boundary.

    Returns:
        The marks as a float in [0, 100], or None when the value is absent,
        malformed or outside the valid range. Never raises.
    """
    num_value = get_numeric_marks(value)
    if num_value is None:
        return None

    if num_value < MIN_MARKS or num_value > MAX_MARKS:
        logger.warning(f"Marks value {num_value} outside {MIN_MARKS:g}-{MAX_MARKS:g} treated as absent")
        return None

    return num_value


def has_marks(marks: float | None) -> bool:
    """Check if marks count as a sat result for division purposes (entered and above zero)."""
    return marks is not None and marks > 0