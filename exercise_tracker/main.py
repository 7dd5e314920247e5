"""FastAPI application wiring for the exercise tracker."""

from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pymongo import MongoClient

from .api.errors import UnexpectedErrorMiddleware, register_exception_handlers
from .api.routes import router as api_router
from .config import get_settings
from .domain.errors import StoreError
from .domain.service import TrackerService
from .middleware import RequestLoggingMiddleware
from .repository import MongoRecordStore

logger = logging.getLogger(__name__)

settings = get_settings()


def configure_logging(level: str) -> None:
    """Send application logs to stdout with a uniform format."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("pymongo").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the MongoDB client for the app lifecycle unless a service was injected."""
    if getattr(app.state, "tracker_service", None) is not None:
        yield
        return

    configure_logging(settings.log_level)
    client: MongoClient = MongoClient(
        settings.mongo_uri,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.mongo_timeout_ms,
    )
    store = MongoRecordStore(client.get_default_database(default=settings.mongo_database))
    try:
        store.ensure_indexes()
        logger.info("connected to MongoDB")
    except StoreError:
        logger.exception("MongoDB connection error")
    app.state.tracker_service = TrackerService(store)
    logger.info("server listening on http://%s:%d", settings.http_host, settings.http_port)
    try:
        yield
    finally:
        client.close()


def create_app(service: TrackerService | None = None) -> FastAPI:
    """Assemble the application; pass ``service`` to bypass MongoDB entirely."""
    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    if service is not None:
        app.state.tracker_service = service

    app.add_middleware(UnexpectedErrorMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.get("/", include_in_schema=False)
    def index() -> FileResponse:
        return FileResponse(os.path.join(settings.views_dir, "index.html"))

    @app.get("/metrics", include_in_schema=False)
    def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(api_router)
    return app


app = create_app()
