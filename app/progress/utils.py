from decimal import ROUND_HALF_UP, Decimal

from app.core.constants import MAX_PERCENTAGE


def percentage(part: int | float, whole: int | float) -> int:
    """Return ``part / whole`` as a whole percentage, rounding halves up.

    A non-positive ``whole`` yields 0. The result is clamped to 0..100.
    """
    if whole <= 0:
        return 0
    value = (Decimal(str(part)) / Decimal(str(whole)) * 100).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return max(0, min(MAX_PERCENTAGE, int(value)))
