"""
FastAPI app entry point aggregating the routers under insight/routes.
Run with `uvicorn insight.api:app`.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI

from . import __version__
from .db import ensure_schema, get_log_level


app = FastAPI(title="insight-api", version=__version__)


@app.on_event("startup")
def on_startup():
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ensure_schema()


from .routes import base as base_routes
from .routes import logs as logs_routes

app.include_router(base_routes.router)
app.include_router(logs_routes.router)
