# path: roadtrace/api/errors.py

from __future__ import annotations

from fastapi import HTTPException

from roadtrace.errors import BackendError, SnapError, SnapTimeoutError


def http_error(e: Exception) -> HTTPException:
    if isinstance(e, SnapTimeoutError):
        return HTTPException(status_code=504, detail={"code": e.code, "message": e.user_message})
    if isinstance(e, SnapError):
        return HTTPException(status_code=502, detail={"code": e.code, "message": e.user_message, "error": str(e)})
    if isinstance(e, BackendError):
        return HTTPException(status_code=502, detail={"code": e.code, "message": str(e), "status": e.status})
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail={"code": "INVALID_INPUT", "message": str(e)})
    return HTTPException(status_code=500, detail={"code": "INTERNAL_ERROR", "message": str(e)})
