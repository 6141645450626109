from typing import Optional

from bloodbuddy.config import BASE_POINTS, REQUEST_BONUS_POINTS, EXTRA_UNIT_POINTS


def calculate_points(units_contributed: int, request_id: Optional[str] = None) -> int:
    """Points awarded for a donation.

    50 base, +25 when the donation answers a blood request, +25 for each
    unit beyond the first.
    """
    points = BASE_POINTS
    if request_id:
        points += REQUEST_BONUS_POINTS
    if units_contributed > 1:
        points += (units_contributed - 1) * EXTRA_UNIT_POINTS
    return points
