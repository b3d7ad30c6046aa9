"""
FastAPI application entry point for the coffee catalog.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from coffee_api.config import Settings, get_settings
from coffee_api.db import CoffeeStore
from coffee_api.dependencies import build_store
from coffee_api.errors import CatalogError
from coffee_api.logging_config import setup_logging
from coffee_api.routes import router
from coffee_api.seed import seed_on_startup
from coffee_api.service import CatalogService

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CatalogError)
    async def catalog_error(request: Request, exc: CatalogError):
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            {"error": str(exc.detail)},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "Invalid request"}, status_code=400)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(
    settings: Optional[Settings] = None, store: Optional[CoffeeStore] = None
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    if store is None:
        store = build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.seed_on_startup and store.backend != "file":
            seed_on_startup(store, settings.coffees_file)
        yield

    app = FastAPI(title="Coffee Catalog API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.catalog = CatalogService(
        store, enforce_unique_names=settings.enforce_unique_names
    )
    _register_error_handlers(app)
    app.include_router(router)

    images_dir = Path(settings.images_dir)
    if images_dir.is_dir():
        app.mount("/images", StaticFiles(directory=images_dir), name="images")
    else:
        logger.info("Images directory %s not found; /images is disabled", images_dir)
    return app


app = create_app()
