# path: roadtrace/api/routes/traces.py

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from roadtrace.api.errors import http_error
from roadtrace.errors import SnapError
from roadtrace.models.trace_models import Coordinate
from roadtrace.services.polyline_builder import TracePipeline
from roadtrace.utils.geo import bbox, polyline_distance_km

router = APIRouter(prefix="/traces", tags=["traces"])


class PolylineRequest(BaseModel):
    points: List[Coordinate]


class PolylineResponse(BaseModel):
    points: List[Coordinate]
    count: int
    densified_count: int
    snapped: bool
    strategy: str
    fallback_reason: Optional[str] = None
    distance_km: float
    bbox: Optional[Dict[str, float]] = None


@router.post("/polyline", response_model=PolylineResponse)
async def build_polyline(body: PolylineRequest, request: Request) -> PolylineResponse:
    pipeline: TracePipeline = request.app.state.pipeline
    try:
        result = await pipeline.build(body.points)
    except (SnapError, ValueError) as e:
        raise http_error(e)
    return PolylineResponse(
        points=result.points,
        count=len(result.points),
        densified_count=result.densified_count,
        snapped=result.snapped,
        strategy=result.strategy,
        fallback_reason=result.fallback_reason,
        distance_km=polyline_distance_km(result.points),
        bbox=bbox(result.points) if result.points else None,
    )
