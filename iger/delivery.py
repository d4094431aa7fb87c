"""Rough delivery ETA for the tracking map."""

import math
from typing import Optional, Sequence, Tuple

MIN_ETA_MINUTES = 5
# Minutes per degree of planar distance
MINUTES_PER_DEGREE = 1000


def estimate_minutes(driver: Sequence[float], destination: Sequence[float]) -> int:
    distance = math.hypot(driver[0] - destination[0], driver[1] - destination[1])
    minutes = math.floor(distance * MINUTES_PER_DEGREE + 0.5)
    return max(MIN_ETA_MINUTES, minutes)


def estimated_arrival(driver: Optional[Sequence[float]], destination: Optional[Sequence[float]]) -> str:
    if not driver or not destination:
        return "Menghitung..."
    return f"{estimate_minutes(driver, destination)} menit"


def map_center(a: Sequence[float], b: Sequence[float]) -> Tuple[float, float]:
    return (a[0] + b[0]) / 2, (a[1] + b[1]) / 2
