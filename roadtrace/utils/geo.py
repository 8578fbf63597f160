# path: roadtrace/utils/geo.py

from __future__ import annotations

from typing import Dict, Sequence
import math

from roadtrace.models.trace_models import Coordinate


EARTH_RADIUS_M = 6371000.0


def bbox(points: Sequence[Coordinate]) -> Dict[str, float]:
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return {
        "min_lat": min(lats),
        "min_lng": min(lngs),
        "max_lat": max(lats),
        "max_lng": max(lngs),
    }


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlmb = math.radians(b.lng - a.lng)

    s = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(s))


def polyline_length_m(points: Sequence[Coordinate]) -> float:
    total = 0.0
    for i in range(1, len(points)):
        total += haversine_m(points[i - 1], points[i])
    return total


def polyline_distance_km(points: Sequence[Coordinate]) -> float:
    """Route length in km, rounded to 2 decimals (0 for fewer than 2 points)."""
    if len(points) < 2:
        return 0.0
    return round(polyline_length_m(points) / 1000.0, 2)
