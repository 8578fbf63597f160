# path: roadtrace/services/densifier.py

from __future__ import annotations

from typing import List, Sequence

from roadtrace.models.trace_models import Coordinate


def densify(points: Sequence[Coordinate], steps_per_segment: int) -> List[Coordinate]:
    """
    Linear interpolation between consecutive points.

    Output starts with points[0]; each pair (A, B) then contributes
    `steps_per_segment` points A + (B - A) * step/steps, step = 1..steps,
    the last of which is B itself. Length is 1 + (N - 1) * steps.
    Fewer than 2 points are returned as-is.
    """
    if steps_per_segment < 1:
        raise ValueError(f"steps_per_segment must be >= 1: {steps_per_segment}")
    if len(points) < 2:
        return list(points)

    out = [points[0]]
    for a, b in zip(points, points[1:]):
        d_lat = b.lat - a.lat
        d_lng = b.lng - a.lng
        for step in range(1, steps_per_segment):
            frac = step / steps_per_segment
            out.append(Coordinate(lat=a.lat + d_lat * frac, lng=a.lng + d_lng * frac))
        out.append(b)
    return out
