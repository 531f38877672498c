# ========================
# lifexp/utils/rounding.py
# ========================

"""
Numeric helpers shared by the cleaning and reporting stages.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional


def round_half_up(value: Optional[float], digits: int = 1) -> Optional[float]:
    """
    Round half away from zero, matching SQL ROUND() rather than
    Python's banker's rounding.

    Args:
        value (float): Value to round (None passes through)
        digits (int): Number of decimal places

    Returns:
        float or None: The rounded value
    """
    if value is None:
        return None
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def mean(values: Iterable[Optional[float]]) -> Optional[float]:
    """Average of the non-missing values, or None when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)
