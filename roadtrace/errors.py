# path: roadtrace/errors.py

from __future__ import annotations

from typing import Optional


class SnapError(Exception):
    """Base failure of a road-snap call. `code` is stable, `user_message` is for display."""

    code = "SNAP_ERROR"
    user_message = "Could not align the trace to the road network."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code)


class SnapTimeoutError(SnapError):
    code = "SNAP_TIMEOUT"
    user_message = "The road-snapping service took too long to answer. Try again."


class SnapNetworkError(SnapError):
    code = "SNAP_NETWORK_ERROR"
    user_message = "Could not reach the road-snapping service. Check the connection and try again."


class SnapHTTPError(SnapError):
    code = "SNAP_HTTP_ERROR"

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"{self.code}({status})")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"The road-snapping service rejected the trace (HTTP {self.status})."


class SnapInvalidResponseError(SnapError):
    code = "SNAP_INVALID_RESPONSE"
    user_message = "The road-snapping service returned an unusable trace."


class SnapNotConfiguredError(SnapError):
    code = "SNAP_NOT_CONFIGURED"
    user_message = "No road-snapping endpoint is configured."


class BackendError(Exception):
    """Failure talking to the routes backend."""

    code = "BACKEND_ERROR"

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class ApiTimeoutError(BackendError):
    code = "REQUEST_TIMEOUT"


class ApiNetworkError(BackendError):
    code = "NETWORK_ERROR"


class ApiUnauthorizedError(BackendError):
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "UNAUTHORIZED"):
        super().__init__(message, status=401)
