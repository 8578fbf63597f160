# path: roadtrace/api/routes/drafts.py

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, Field

from roadtrace.api.errors import http_error
from roadtrace.errors import BackendError, SnapError
from roadtrace.models.trace_models import Coordinate, DraftSnapshot, SaveResult
from roadtrace.services.draft_session import DraftSession, DraftStore

router = APIRouter(prefix="/drafts", tags=["drafts"])


class CreateDraftRequest(BaseModel):
    route_id: Optional[str] = None


class SaveDraftRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=120)
    description: Optional[str] = None
    is_public: bool = True


def _store(request: Request) -> DraftStore:
    return request.app.state.drafts


def _session(request: Request, draft_id: str) -> DraftSession:
    try:
        return _store(request).get(draft_id)
    except KeyError:
        raise HTTPException(status_code=404, detail={"code": "DRAFT_NOT_FOUND", "message": draft_id})


@router.post("", response_model=DraftSnapshot)
async def create_draft(request: Request, body: Optional[CreateDraftRequest] = None) -> DraftSnapshot:
    route_id = body.route_id if body else None
    try:
        session = await _store(request).create(route_id=route_id)
    except (BackendError, ValueError) as e:
        raise http_error(e)
    return session.snapshot()


@router.get("/{draft_id}", response_model=DraftSnapshot)
async def get_draft(draft_id: str, request: Request) -> DraftSnapshot:
    return _session(request, draft_id).snapshot()


@router.post("/{draft_id}/points", response_model=DraftSnapshot)
async def tap_point(draft_id: str, point: Coordinate, request: Request) -> DraftSnapshot:
    return _session(request, draft_id).tap(point)


@router.delete("/{draft_id}/points/last", response_model=DraftSnapshot)
async def undo_point(draft_id: str, request: Request) -> DraftSnapshot:
    return _session(request, draft_id).undo()


@router.delete("/{draft_id}/points", response_model=DraftSnapshot)
async def clear_points(draft_id: str, request: Request) -> DraftSnapshot:
    return _session(request, draft_id).clear()


@router.post("/{draft_id}/preview", response_model=DraftSnapshot)
async def refresh_preview(draft_id: str, request: Request) -> DraftSnapshot:
    session = _session(request, draft_id)
    await session.refresh_preview()
    return session.snapshot()


@router.post("/{draft_id}/save", response_model=SaveResult)
async def save_draft(draft_id: str, request: Request, body: Optional[SaveDraftRequest] = None) -> SaveResult:
    session = _session(request, draft_id)
    body = body or SaveDraftRequest()
    try:
        result = await session.save(body.title, description=body.description, is_public=body.is_public)
    except (SnapError, BackendError, ValueError) as e:
        raise http_error(e)
    _store(request).discard(draft_id)
    return result


@router.delete("/{draft_id}", status_code=204)
async def discard_draft(draft_id: str, request: Request) -> Response:
    if not _store(request).discard(draft_id):
        raise HTTPException(status_code=404, detail={"code": "DRAFT_NOT_FOUND", "message": draft_id})
    return Response(status_code=204)
