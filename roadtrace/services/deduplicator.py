# path: roadtrace/services/deduplicator.py

from __future__ import annotations

from typing import Iterable, List

from roadtrace.models.trace_models import Coordinate, DEFAULT_EPSILON


def dedupe(points: Iterable[Coordinate], epsilon: float = DEFAULT_EPSILON) -> List[Coordinate]:
    # Single pass; only the last kept point is compared.
    out: List[Coordinate] = []
    for p in points:
        if not out or not p.is_near(out[-1], epsilon):
            out.append(p)
    return out
