"""Distance-based point thinning for pixel-space polylines."""

from __future__ import annotations

import math
from typing import Sequence


PixelPoint = tuple[float, float]


def simplify(points: Sequence[PixelPoint], tolerance: float) -> list[PixelPoint]:
    """Drop points closer than ``tolerance`` pixels to the last kept point.

    The first and last points are always kept. This is a single pass, so it
    bounds point density along the path rather than deviation from it.
    """
    if len(points) < 2:
        return list(points)

    kept: list[PixelPoint] = [points[0]]
    last_index = 0
    for index in range(1, len(points)):
        point = points[index]
        last = kept[-1]
        if math.hypot(point[0] - last[0], point[1] - last[1]) > tolerance:
            kept.append(point)
            last_index = index

    if last_index != len(points) - 1:
        kept.append(points[-1])
    return kept
