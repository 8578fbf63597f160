# path: roadtrace/services/draft_session.py

"""
In-memory editing session for a Draft Trace.

Previews are advisory: every preview takes a snapshot of the draft and a new
generation number, and its outcome is applied only if no newer preview (or
clear) has been issued meanwhile. Saves always recompute from the current
draft and never reuse the preview.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Dict, List, Optional, Set, Tuple

from roadtrace.errors import SnapError
from roadtrace.models.trace_models import Coordinate, DraftSnapshot, RouteCreate, SaveResult
from roadtrace.services.polyline_builder import TracePipeline
from roadtrace.services.route_points import RoutesClient, to_persisted
from roadtrace.utils.geo import polyline_distance_km

logger = logging.getLogger(__name__)


class DraftSession:
    def __init__(
        self,
        pipeline: TracePipeline,
        routes: Optional[RoutesClient] = None,
        *,
        route_id: Optional[str] = None,
        points: Optional[List[Coordinate]] = None,
        draft_id: Optional[str] = None,
    ):
        self.draft_id = draft_id or uuid.uuid4().hex
        self.pipeline = pipeline
        self.routes = routes
        self.route_id = route_id
        self._points: List[Coordinate] = list(points or [])
        self.preview: Optional[List[Coordinate]] = None
        self.snapping = False
        self.snap_error: Optional[str] = None
        self.generation = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def points(self) -> Tuple[Coordinate, ...]:
        return tuple(self._points)

    def snapshot(self) -> DraftSnapshot:
        return DraftSnapshot(
            draft_id=self.draft_id,
            route_id=self.route_id,
            points=list(self._points),
            preview=list(self.preview) if self.preview is not None else None,
            snapping=self.snapping,
            snap_error=self.snap_error,
            generation=self.generation,
        )

    ### editing

    def tap(self, point: Coordinate) -> DraftSnapshot:
        self._points = [*self._points, point]
        self._schedule_preview()
        return self.snapshot()

    def undo(self) -> DraftSnapshot:
        self._points = self._points[:-1]
        self._schedule_preview()
        return self.snapshot()

    def clear(self) -> DraftSnapshot:
        self._points = []
        self.generation += 1  # drops any in-flight preview
        self.preview = None
        self.snap_error = None
        self.snapping = False
        return self.snapshot()

    ### preview

    def _begin_preview(self) -> Tuple[int, List[Coordinate]]:
        self.generation += 1
        return self.generation, list(self._points)

    def _schedule_preview(self) -> Optional[asyncio.Task]:
        token, snapshot = self._begin_preview()
        if len(snapshot) < 2:
            self._apply_preview(token, None, None)
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: previews only run on demand via refresh_preview().
            return None
        self.snapping = True
        task = loop.create_task(self._run_preview(token, snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def refresh_preview(self) -> Optional[List[Coordinate]]:
        token, snapshot = self._begin_preview()
        if len(snapshot) < 2:
            self._apply_preview(token, None, None)
            return None
        self.snapping = True
        await self._run_preview(token, snapshot)
        return self.preview if token == self.generation else None

    def close(self) -> None:
        self.generation += 1
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.snapping = False

    async def wait_for_previews(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _run_preview(self, token: int, snapshot: List[Coordinate]) -> None:
        try:
            result = await self.pipeline.build(snapshot)
        except SnapError as e:
            logger.warning("preview snap failed (%s): %s", e.code, e)
            self._apply_preview(token, None, e.user_message)
            return
        except Exception:
            logger.exception("preview failed unexpectedly")
            self._apply_preview(token, None, "Could not compute the trace preview.")
            return
        self._apply_preview(token, result.points, None)

    def _apply_preview(self, token: int, preview: Optional[List[Coordinate]], error: Optional[str]) -> bool:
        if token != self.generation:
            logger.debug("discarding stale preview %d (latest %d)", token, self.generation)
            return False
        self.preview = preview
        self.snap_error = error
        self.snapping = False
        return True

    ### persistence

    async def hydrate(self) -> DraftSnapshot:
        if self.routes is None or self.route_id is None:
            raise ValueError("hydrate needs a routes backend and a route_id")
        stored = await asyncio.to_thread(self.routes.fetch_route_points, self.route_id)
        self._points = stored.coordinates()
        self.generation += 1
        self.preview = None
        self.snap_error = None
        self.snapping = False
        return self.snapshot()

    async def save(self, title: Optional[str] = None, *, description: Optional[str] = None, is_public: bool = True) -> SaveResult:
        """
        Commit the draft to the backend.

        Existing route: the recomputed trace replaces all of its points
        (needs at least 2 points). New route: needs a title and at least one
        point; the route is created and, for 2+ points, its trace persisted.
        Snap errors propagate unless the pipeline falls back to densified.
        """
        if self.routes is None:
            raise RuntimeError("no routes backend configured")
        points = list(self._points)

        if self.route_id is not None:
            if len(points) < 2:
                raise ValueError("at least 2 points are needed to define a road")
            result = await self.pipeline.build(points)
            await asyncio.to_thread(self.routes.replace_route_points, self.route_id, result.points)
            return SaveResult(
                route_id=self.route_id,
                points=to_persisted(self.route_id, result.points),
                snapped=result.snapped,
                fallback_reason=result.fallback_reason,
            )

        title = (title or "").strip()
        if not title or not points:
            raise ValueError("a title and at least one point on the map are required")

        result = await self.pipeline.build(points)
        start = points[0]
        payload = RouteCreate(
            title=title,
            description=description,
            distance_km=polyline_distance_km(result.points),
            start_lat=start.lat,
            start_lng=start.lng,
            is_public=is_public,
        )
        route = await asyncio.to_thread(self.routes.create_route, payload)
        self.route_id = route.id

        persisted = None
        if len(points) > 1:
            await asyncio.to_thread(self.routes.replace_route_points, route.id, result.points)
            persisted = to_persisted(route.id, result.points)
        return SaveResult(
            route=route,
            route_id=route.id,
            points=persisted,
            snapped=result.snapped,
            fallback_reason=result.fallback_reason,
        )


class DraftStore:
    def __init__(self, pipeline: TracePipeline, routes: Optional[RoutesClient] = None):
        self.pipeline = pipeline
        self.routes = routes
        self._sessions: Dict[str, DraftSession] = {}

    async def create(self, route_id: Optional[str] = None) -> DraftSession:
        session = DraftSession(self.pipeline, self.routes, route_id=route_id)
        if route_id is not None:
            await session.hydrate()
        self._sessions[session.draft_id] = session
        return session

    def get(self, draft_id: str) -> DraftSession:
        return self._sessions[draft_id]

    def discard(self, draft_id: str) -> bool:
        session = self._sessions.pop(draft_id, None)
        if session is None:
            return False
        session.close()
        return True

    def __len__(self) -> int:
        return len(self._sessions)
