"""
FastAPI app entry point aggregating per-domain routers under locbase/routes.
Keep as `uvicorn locbase.api:app --host 127.0.0.1`.
"""
from __future__ import annotations


import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import load_config
from .errors import StorageError
from .logs import ensure_log_schema, LogContext
from .services.bootstrap import build_controller

logger = logging.getLogger(__name__)

app = FastAPI(title="locbase-api", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    cfg = load_config()
    controller = build_controller(cfg)
    db_path = controller.store.db_path
    await asyncio.to_thread(ensure_log_schema, db_path)
    try:
        await controller.store.open()
    except StorageError as e:
        await asyncio.to_thread(LogContext("STARTUP", db_path=db_path).write, "ERROR", f"record_store_open_failed: {e}")
        raise
    await controller.load()
    app.state.controller = controller
    logger.info("locbase api ready, db=%s", db_path)


@app.on_event("shutdown")
async def on_shutdown():
    controller = getattr(app.state, "controller", None)
    if controller is not None:
        await controller.store.close()
        app.state.controller = None


# Include routers (split by business domain)
from .routes import base as base_routes
from .routes import locations as locations_routes
from .routes import preferences as preferences_routes
from .routes import logs as logs_routes

app.include_router(base_routes.router)
app.include_router(locations_routes.router)
app.include_router(preferences_routes.router)
app.include_router(logs_routes.router)
