"""Numeric policy applied at the reconciliation boundary.

Out-of-range values are clamped, not rejected, and rounded to the nearest
integer gram/kcal. Estimates keep full precision until this point.
"""

import logging
import math
from typing import Any, Optional

from mealchat.domain.shared.errors import ValidationFailure

logger = logging.getLogger(__name__)

PROTEIN_MAX_G = 500
CALORIES_MAX = 5000
CARBS_MAX_G = 1000
FAT_MAX_G = 500


def safe_number(value: Any, default: float = 0.0) -> float:
    """
    Convert a scorer/API value to a finite float.

    Strings are parsed, None/NaN/inf and garbage fall back to default.

    Example:
        >>> safe_number("14.5")
        14.5
        >>> safe_number(None, 3.0)
        3.0
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip().replace(",", "."))
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def clamp_round(field: str, value: Any, upper: int) -> int:
    """
    Clamp to [0, upper] and round to the nearest integer.

    Logs a ValidationFailure when clamping changed the value.
    """
    number = safe_number(value)
    clamped = min(max(number, 0.0), float(upper))

    if clamped != number:
        failure = ValidationFailure(field, number, clamped)
        logger.warning(
            "Value clamped",
            extra={"field": field, "value": number, "clamped": clamped, "reason": str(failure)},
        )

    # round half up, not banker's rounding
    return int(math.floor(clamped + 0.5))


def clamp_optional(field: str, value: Any, upper: int) -> Optional[int]:
    """Like clamp_round but keeps None for absent values."""
    if value is None:
        return None
    return clamp_round(field, value, upper)
