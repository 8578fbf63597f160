# path: roadtrace/services/route_points.py

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

import requests

from roadtrace.config import DEFAULT_API_TIMEOUT_MS, Settings
from roadtrace.errors import ApiNetworkError, ApiTimeoutError, ApiUnauthorizedError, BackendError
from roadtrace.models.trace_models import (
    Coordinate,
    PersistedRoutePoint,
    Route,
    RouteCreate,
    RoutePoints,
    as_payload,
)
from roadtrace.utils.http import make_session

logger = logging.getLogger(__name__)

ROUTES_PATH = "/api/sumo/routes"


def to_persisted(route_id: str, points: Sequence[Coordinate]) -> RoutePoints:
    return RoutePoints(
        route_id=route_id,
        points=[
            PersistedRoutePoint(route_id=route_id, point_order=i, lat=p.lat, lng=p.lng)
            for i, p in enumerate(points)
        ],
    )


class RoutesClient:
    """JSON client for the routes backend. Point sets are always replaced whole."""

    def __init__(
        self,
        base_url: Optional[str],
        *,
        token: Optional[str] = None,
        timeout_ms: int = DEFAULT_API_TIMEOUT_MS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.token = token
        self.timeout_ms = timeout_ms
        self.session = make_session(session)

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "RoutesClient":
        return cls(settings.api_url, token=settings.api_token, timeout_ms=settings.api_timeout_ms, session=session)

    def build_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not self.base_url:
            raise BackendError("ROADTRACE_API_URL is not set")
        return f"{self.base_url}{path if path.startswith('/') else '/' + path}"

    def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        auth: bool = False,
        token: Optional[str] = None,
    ) -> dict:
        headers = {"Accept": "application/json"}
        if auth:
            token = token or self.token
            if not token:
                raise ApiUnauthorizedError()
            headers["Authorization"] = f"Bearer {token}"

        url = self.build_url(path)
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                json=body,
                timeout=self.timeout_ms / 1000.0,
            )
        except requests.Timeout as e:
            raise ApiTimeoutError(f"REQUEST_TIMEOUT_{self.timeout_ms}MS") from e
        except requests.RequestException as e:
            raise ApiNetworkError(f"NETWORK_ERROR: {e}") from e

        ok = 200 <= response.status_code < 300
        payload: dict = {}
        text = response.text
        if text:
            try:
                payload = response.json()
            except ValueError:
                preview = text.strip()[:120]
                suffix = f" ({preview})" if preview else ""
                if not ok:
                    raise BackendError(
                        f"HTTP_{response.status_code} {url}: non-JSON response from server{suffix}",
                        status=response.status_code,
                    )
                raise BackendError(f"Invalid response from server at {url} (not JSON){suffix}", status=response.status_code)

        if not ok:
            message = None
            if isinstance(payload, dict):
                message = payload.get("error") or payload.get("message")
            raise BackendError(message or f"HTTP_{response.status_code}", status=response.status_code)

        return payload if isinstance(payload, dict) else {}

    def fetch_route(self, route_id: str) -> Route:
        data = self.request(f"{ROUTES_PATH}/{route_id}")
        return Route.model_validate(data.get("route"))

    def fetch_route_points(self, route_id: str) -> RoutePoints:
        data = self.request(f"{ROUTES_PATH}/{route_id}/points")
        rows = [PersistedRoutePoint.model_validate(row) for row in data.get("points") or []]
        rows.sort(key=lambda p: p.point_order)
        return RoutePoints(route_id=route_id, points=rows)

    def create_route(self, payload: RouteCreate) -> Route:
        data = self.request(ROUTES_PATH, method="POST", auth=True, body=payload.model_dump(mode="json"))
        return Route.model_validate(data.get("route"))

    def replace_route_points(self, route_id: str, points: Sequence[Coordinate]) -> int:
        if len(points) < 2:
            raise ValueError(f"refusing to persist a trace of {len(points)} point(s) for route {route_id}")
        data = self.request(
            f"{ROUTES_PATH}/{route_id}/points",
            method="PUT",
            auth=True,
            body={"points": as_payload(points)},
        )
        count = data.get("count", len(points))
        logger.info("replaced points of route %s (%d points)", route_id, count)
        return count
