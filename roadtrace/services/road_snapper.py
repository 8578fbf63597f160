# path: roadtrace/services/road_snapper.py

"""
Road snapping strategies.

Both strategies expose `async snap(points) -> list[Coordinate]` and raise
`SnapError` subclasses on failure, so the pipeline does not care which one
is configured:

- BatchSnapper: one POST with the whole trace to the snap endpoint. Any
  failure (timeout, transport, non-2xx, bad body, < 2 points) fails the call.
- PerPointSnapper: one nearest-road lookup per point, issued concurrently and
  reassembled in input order. Failed lookups follow `on_point_failure`.

Blocking `requests` calls run in worker threads; the wall-clock budget is
enforced with `asyncio.wait_for` on top of the requests timeout.
"""

from __future__ import annotations

import abc
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

import requests

from roadtrace.config import PointFailurePolicy, Settings
from roadtrace.errors import (
    SnapError,
    SnapHTTPError,
    SnapInvalidResponseError,
    SnapNetworkError,
    SnapNotConfiguredError,
    SnapTimeoutError,
)
from roadtrace.models.trace_models import (
    Coordinate,
    DEFAULT_EPSILON,
    NearestResponse,
    SnapRequest,
    SnapResponse,
)
from roadtrace.utils.http import make_session

logger = logging.getLogger(__name__)

PointLookup = Callable[[Coordinate], Awaitable[Coordinate]]


class RoadSnapper(abc.ABC):
    name = "base"
    # True when the service already collapses near-duplicate points.
    dedupes_server_side = False

    @abc.abstractmethod
    async def snap(self, points: Sequence[Coordinate]) -> List[Coordinate]:
        ...


async def _bounded(call, timeout_s: float):
    try:
        return await asyncio.wait_for(asyncio.to_thread(call), timeout=timeout_s)
    except asyncio.TimeoutError as e:
        raise SnapTimeoutError(f"SNAP_TIMEOUT after {timeout_s:g}s") from e


class BatchSnapper(RoadSnapper):
    name = "batch"
    dedupes_server_side = True

    def __init__(
        self,
        url: Optional[str],
        *,
        timeout_s: float = 10.0,
        steps_per_segment: int = 1,
        dedupe_epsilon: float = DEFAULT_EPSILON,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout_s = timeout_s
        self.steps_per_segment = steps_per_segment
        self.dedupe_epsilon = dedupe_epsilon
        self.session = make_session(session)

    def snap_blocking(self, points: Sequence[Coordinate]) -> List[Coordinate]:
        if not self.url:
            raise SnapNotConfiguredError("snap endpoint is not configured (set ROADTRACE_SNAP_URL or ROADTRACE_API_URL)")

        payload = SnapRequest(
            points=list(points),
            steps_per_segment=self.steps_per_segment,
            dedupe_epsilon=self.dedupe_epsilon,
        ).model_dump(mode="json")

        logger.info("[SNAP] POST %s inputPoints=%d", self.url, len(points))
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout_s)
        except requests.Timeout as e:
            raise SnapTimeoutError(f"SNAP_TIMEOUT: {e}") from e
        except requests.RequestException as e:
            raise SnapNetworkError(f"SNAP_NETWORK_ERROR: {e}") from e

        logger.info("[SNAP] STATUS %d", response.status_code)
        if not (200 <= response.status_code < 300):
            raise SnapHTTPError(response.status_code)

        try:
            body = SnapResponse.model_validate(response.json())
        except ValueError as e:
            raise SnapInvalidResponseError(f"SNAP_INVALID_RESPONSE: {e}") from e

        if not body.ok or not body.points or len(body.points) < 2:
            raise SnapInvalidResponseError(body.error or SnapInvalidResponseError.code)

        logger.info("[SNAP] OK outputPoints=%d", len(body.points))
        return body.points

    async def snap(self, points: Sequence[Coordinate]) -> List[Coordinate]:
        snapshot = tuple(points)
        return await _bounded(lambda: self.snap_blocking(snapshot), self.timeout_s)


class PerPointSnapper(RoadSnapper):
    name = "per-point"

    def __init__(
        self,
        lookup: Optional[PointLookup] = None,
        *,
        on_point_failure: PointFailurePolicy = "keep-original",
        nearest_url: str = "https://router.project-osrm.org/nearest/v1/driving",
        timeout_s: float = 10.0,
        max_concurrency: int = 8,
        session: Optional[requests.Session] = None,
    ):
        if on_point_failure not in ("keep-original", "drop", "propagate"):
            raise ValueError(f"unknown on_point_failure policy: {on_point_failure}")
        self.lookup = lookup or self.nearest
        self.on_point_failure = on_point_failure
        self.nearest_url = nearest_url.rstrip("/")
        self.timeout_s = timeout_s
        self.max_concurrency = max(1, max_concurrency)
        self.session = make_session(session)

    def nearest_blocking(self, point: Coordinate) -> Coordinate:
        url = f"{self.nearest_url}/{point.lng},{point.lat}"
        try:
            response = self.session.get(url, params={"number": 1}, timeout=self.timeout_s)
        except requests.Timeout as e:
            raise SnapTimeoutError(f"SNAP_TIMEOUT: {e}") from e
        except requests.RequestException as e:
            raise SnapNetworkError(f"SNAP_NETWORK_ERROR: {e}") from e

        if not (200 <= response.status_code < 300):
            raise SnapHTTPError(response.status_code)

        try:
            body = NearestResponse.model_validate(response.json())
        except ValueError as e:
            raise SnapInvalidResponseError(f"SNAP_INVALID_RESPONSE: {e}") from e

        if not body.waypoints or not body.waypoints[0].location or len(body.waypoints[0].location) < 2:
            raise SnapInvalidResponseError("nearest response has no waypoint location")
        lng, lat = body.waypoints[0].location[:2]
        try:
            return Coordinate(lat=lat, lng=lng)
        except ValueError as e:
            raise SnapInvalidResponseError(f"SNAP_INVALID_RESPONSE: {e}") from e

    async def nearest(self, point: Coordinate) -> Coordinate:
        return await _bounded(lambda: self.nearest_blocking(point), self.timeout_s)

    async def snap(self, points: Sequence[Coordinate]) -> List[Coordinate]:
        snapshot = tuple(points)
        gate = asyncio.Semaphore(self.max_concurrency)

        async def snap_one(index: int, point: Coordinate) -> Optional[Coordinate]:
            async with gate:
                try:
                    return await self.lookup(point)
                except SnapError as e:
                    if self.on_point_failure == "propagate":
                        raise
                    logger.debug("nearest-road lookup failed for point %d (%s): %s", index, e.code, self.on_point_failure)
                    return point if self.on_point_failure == "keep-original" else None

        # gather returns results in argument order, whatever the completion order.
        results = await asyncio.gather(*(snap_one(i, p) for i, p in enumerate(snapshot)))
        return [p for p in results if p is not None]


def build_snapper(settings: Settings, session: Optional[requests.Session] = None) -> RoadSnapper:
    if settings.snap_strategy == "per-point":
        return PerPointSnapper(
            on_point_failure=settings.on_point_failure,
            nearest_url=settings.nearest_url,
            timeout_s=settings.nearest_timeout_s,
            session=session,
        )
    return BatchSnapper(
        settings.resolved_snap_url,
        timeout_s=settings.snap_timeout_s,
        steps_per_segment=settings.server_steps_per_segment,
        dedupe_epsilon=settings.dedupe_epsilon,
        session=session,
    )
