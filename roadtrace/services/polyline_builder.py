# path: roadtrace/services/polyline_builder.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import requests

from roadtrace.config import Settings, SnapFailurePolicy
from roadtrace.errors import SnapError, SnapInvalidResponseError
from roadtrace.models.trace_models import Coordinate, DEFAULT_EPSILON
from roadtrace.services.deduplicator import dedupe
from roadtrace.services.densifier import densify
from roadtrace.services.road_snapper import RoadSnapper, build_snapper

logger = logging.getLogger(__name__)


@dataclass
class TraceResult:
    points: List[Coordinate]
    densified_count: int
    snapped: bool
    strategy: str
    fallback_reason: Optional[str] = None


class TracePipeline:
    """
    densify -> snap -> dedupe.

    Dedupe runs only when the snapper does not already do it server-side.
    With on_snap_failure="raise" snap errors propagate; with "densified" the
    densified, unsnapped trace is returned instead.
    """

    def __init__(
        self,
        snapper: RoadSnapper,
        *,
        steps_per_segment: int = 20,
        dedupe_epsilon: float = DEFAULT_EPSILON,
        on_snap_failure: SnapFailurePolicy = "raise",
    ):
        if on_snap_failure not in ("raise", "densified"):
            raise ValueError(f"unknown on_snap_failure policy: {on_snap_failure}")
        self.snapper = snapper
        self.steps_per_segment = steps_per_segment
        self.dedupe_epsilon = dedupe_epsilon
        self.on_snap_failure = on_snap_failure

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "TracePipeline":
        return cls(
            build_snapper(settings, session=session),
            steps_per_segment=settings.steps_per_segment,
            dedupe_epsilon=settings.dedupe_epsilon,
            on_snap_failure=settings.on_snap_failure,
        )

    async def build(self, points: Sequence[Coordinate]) -> TraceResult:
        snapshot = list(points)
        if len(snapshot) < 2:
            # A lone point cannot define a road segment.
            return TraceResult(snapshot, len(snapshot), snapped=False, strategy=self.snapper.name)

        densified = densify(snapshot, self.steps_per_segment)
        try:
            snapped = await self.snapper.snap(densified)
            if not self.snapper.dedupes_server_side:
                snapped = dedupe(snapped, self.dedupe_epsilon)
            if len(snapped) < 2:
                raise SnapInvalidResponseError(f"snapped trace collapsed to {len(snapped)} point(s)")
        except SnapError as e:
            if self.on_snap_failure == "raise":
                raise
            logger.warning("road snap failed (%s: %s), keeping densified trace", e.code, e)
            return TraceResult(
                densified,
                len(densified),
                snapped=False,
                strategy=self.snapper.name,
                fallback_reason=e.code,
            )

        return TraceResult(snapped, len(densified), snapped=True, strategy=self.snapper.name)


async def build_road_snapped_polyline(points: Sequence[Coordinate], snapper: RoadSnapper, **options) -> List[Coordinate]:
    result = await TracePipeline(snapper, **options).build(points)
    return result.points
