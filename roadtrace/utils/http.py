# path: roadtrace/utils/http.py

from __future__ import annotations

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


def _log_response(response: requests.Response, *args, **kwargs) -> None:
    logger.info("[FETCH] %s %s %d", response.request.method, response.url, response.status_code)


class LoggingSession(requests.Session):
    """requests.Session that logs METHOD url status for every call, or NETWORK_ERROR."""

    def __init__(self):
        super().__init__()
        self.hooks["response"].append(_log_response)

    def request(self, method, url, *args, **kwargs):
        try:
            return super().request(method, url, *args, **kwargs)
        except requests.RequestException:
            logger.info("[FETCH] %s %s NETWORK_ERROR", str(method).upper(), url)
            raise


def make_session(session: Optional[requests.Session] = None) -> requests.Session:
    return session if session is not None else LoggingSession()
