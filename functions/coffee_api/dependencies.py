"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import Optional

from fastapi import Depends, Header, Query, Request

from coffee_api.config import Settings
from coffee_api.db import CoffeeStore, FileCoffeeStore, SqlCoffeeStore
from coffee_api.errors import Unauthorized
from coffee_api.mongo import MongoCoffeeStore
from coffee_api.service import CatalogService

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> CoffeeStore:
    """
    Pick the catalog backend from configuration: MongoDB first, then a
    relational database, else the JSON file.
    """
    backend = settings.backend_name
    if backend == "mongo":
        store = MongoCoffeeStore(
            settings.mongodb_uri,
            database=settings.mongodb_db,
            collection_name=settings.mongodb_collection,
            timeout_ms=settings.mongodb_timeout_ms,
        )
    elif backend == "sql":
        store = SqlCoffeeStore(settings.database_url)
    else:
        store = FileCoffeeStore(settings.coffees_file, writable=not settings.catalog_read_only)
    logger.info("Using %s catalog backend (ready=%s)", backend, store.is_ready())
    return store


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def read_json_body(request: Request) -> dict:
    """Request body as a JSON object; anything else reads as empty."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring non-JSON request body")
        return {}
    return data if isinstance(data, dict) else {}


async def require_api_secret(
    x_api_secret: Optional[str] = Header(default=None),
    api_secret: Optional[str] = Query(default=None),
    body: dict = Depends(read_json_body),
    settings: Settings = Depends(get_app_settings),
) -> dict:
    """
    Check the shared secret (header, then body field, then query parameter)
    and hand the parsed body on to the route.
    """
    expected = settings.api_secret
    if not expected:
        logger.warning("Rejected protected call: API_SECRET is not configured")
        raise Unauthorized("Unauthorized")

    if x_api_secret is not None:
        provided = x_api_secret
    elif body.get("api_secret") is not None:
        provided = body.get("api_secret")
    else:
        provided = api_secret

    if not isinstance(provided, str) or not secrets.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    ):
        raise Unauthorized("Unauthorized")
    return body
