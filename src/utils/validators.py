"""Lightweight validation helpers."""

import math
from typing import Any

from utils.error_handling import InvalidRatingDataError


def ensure_present(value: Any, field: str) -> None:
    """Raise InvalidRatingDataError if value is empty."""
    if value is None or (isinstance(value, str) and not value.strip()) or value == []:
        raise InvalidRatingDataError(f"{field} is required")


def weights_sum_to_one(weights: Any, tolerance: float = 1e-6) -> bool:
    """True when the blend weights add up to 1.0 (not enforced, only reported)."""
    return math.isclose(weights.total, 1.0, abs_tol=tolerance)
