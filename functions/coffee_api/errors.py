"""
Error taxonomy shared by the storage adapters, the service and the router.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Base error rendered to clients as ``{"error": message}``."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(CatalogError):
    status_code = 401
    default_message = "Unauthorized"


class BadRequest(CatalogError):
    status_code = 400
    default_message = "Bad request"


class NotFound(CatalogError):
    status_code = 404
    default_message = "Coffee not found"


class Conflict(CatalogError):
    status_code = 409
    default_message = "Coffee already exists"


class Unavailable(CatalogError):
    status_code = 503
    default_message = "Database not configured"


class BackendError(CatalogError):
    status_code = 500
    default_message = "Database error"


@contextmanager
def translate_backend_errors(
    backend: str,
    *,
    unavailable: tuple[type[BaseException], ...] = (),
    failure: tuple[type[BaseException], ...] = (Exception,),
) -> Iterator[None]:
    """
    Map library exceptions raised inside the block onto the catalog taxonomy.

    Connectivity errors listed in ``unavailable`` become ``Unavailable``;
    anything else listed in ``failure`` becomes ``BackendError``.
    """
    try:
        yield
    except CatalogError:
        raise
    except unavailable as exc:
        logger.warning("%s backend unreachable: %s", backend, exc)
        raise Unavailable("Database unavailable") from exc
    except failure as exc:
        logger.exception("%s backend call failed", backend)
        raise BackendError() from exc
