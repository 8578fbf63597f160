# path: roadtrace/main.py

from __future__ import annotations

from typing import Optional

import requests
from fastapi import FastAPI

from roadtrace.api.routes.drafts import router as drafts_router
from roadtrace.api.routes.traces import router as traces_router
from roadtrace.config import Settings, load_settings
from roadtrace.logging_config import configure
from roadtrace.services.draft_session import DraftStore
from roadtrace.services.polyline_builder import TracePipeline
from roadtrace.services.route_points import RoutesClient
from roadtrace.utils.http import make_session


def create_app(
    settings: Optional[Settings] = None,
    *,
    pipeline: Optional[TracePipeline] = None,
    routes: Optional[RoutesClient] = None,
    session: Optional[requests.Session] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure(settings.log_level)

    session = make_session(session)
    pipeline = pipeline or TracePipeline.from_settings(settings, session=session)
    routes = routes or RoutesClient.from_settings(settings, session=session)

    app = FastAPI(title="roadtrace")
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.routes = routes
    app.state.drafts = DraftStore(pipeline, routes)

    app.include_router(traces_router)
    app.include_router(drafts_router)
    return app


app = create_app()
