# path: roadtrace/models/trace_models.py

from __future__ import annotations

from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_EPSILON = 0.00001  # degrees, ~1.1 m


class Coordinate(BaseModel):
    """WGS84 point in decimal degrees. No altitude."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float

    @field_validator("lat")
    @classmethod
    def validate_lat(cls, lat: float):
        if not (-90.0 <= lat <= 90.0):
            raise ValueError(f"lat out of range [-90,90]: {lat}")
        return lat

    @field_validator("lng")
    @classmethod
    def validate_lng(cls, lng: float):
        if not (-180.0 <= lng <= 180.0):
            raise ValueError(f"lng out of range [-180,180]: {lng}")
        return lng

    def is_near(self, other: "Coordinate", epsilon: float = DEFAULT_EPSILON) -> bool:
        return abs(self.lat - other.lat) <= epsilon and abs(self.lng - other.lng) <= epsilon


def as_payload(points: Sequence[Coordinate]) -> List[dict]:
    return [{"lat": p.lat, "lng": p.lng} for p in points]


### Snap service wire contract


class SnapRequest(BaseModel):
    points: List[Coordinate]
    steps_per_segment: int = Field(ge=1)
    dedupe_epsilon: float = Field(ge=0)


class SnapResponse(BaseModel):
    ok: bool = False
    points: Optional[List[Coordinate]] = None
    error: Optional[str] = None


class NearestWaypoint(BaseModel):
    location: Optional[List[float]] = None  # [lng, lat]


class NearestResponse(BaseModel):
    waypoints: List[NearestWaypoint] = Field(default_factory=list)


### Persistence


class PersistedRoutePoint(BaseModel):
    id: Optional[int] = None
    route_id: str
    point_order: int = Field(ge=0)
    lat: float
    lng: float

    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)


class RoutePoints(BaseModel):
    route_id: str
    points: List[PersistedRoutePoint]

    @model_validator(mode="after")
    def validate_point_order(self):
        # point_order is contiguous from 0 for a given route
        for idx, p in enumerate(self.points):
            if p.point_order != idx:
                raise ValueError("point_order must be contiguous starting at 0")
            if p.route_id != self.route_id:
                raise ValueError(f"point {idx} belongs to route {p.route_id}, not {self.route_id}")
        return self

    def coordinates(self) -> List[Coordinate]:
        return [p.coordinate() for p in self.points]


class RouteCreate(BaseModel):
    title: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    city: Optional[str] = None
    distance_km: Optional[float] = Field(default=None, ge=0)
    start_lat: float
    start_lng: float
    is_public: bool = True


class Route(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    city: Optional[str] = None
    distance_km: Optional[float] = None
    start_lat: float
    start_lng: float
    is_public: bool = True


### Draft editing


class DraftSnapshot(BaseModel):
    draft_id: str
    route_id: Optional[str] = None
    points: List[Coordinate]
    preview: Optional[List[Coordinate]] = None
    snapping: bool = False
    snap_error: Optional[str] = None
    generation: int = 0


class SaveResult(BaseModel):
    route: Optional[Route] = None
    route_id: str
    points: Optional[RoutePoints] = None
    snapped: bool
    fallback_reason: Optional[str] = None
