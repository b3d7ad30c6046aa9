"""
Catalog operations shared by every storage backend.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from coffee_api.db import CoffeeId, CoffeeRecord, CoffeeStore
from coffee_api.errors import BadRequest, Conflict, NotFound, Unavailable

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class CatalogService:
    """
    Validates requests and guards the active store.

    Mutations run under a single lock so "max id + 1" assignment and the
    duplicate-name check cannot interleave within one process.
    """

    def __init__(self, store: CoffeeStore, *, enforce_unique_names: bool = True):
        self.store = store
        self.enforce_unique_names = enforce_unique_names
        self._write_lock = threading.Lock()

    def _require_ready(self) -> None:
        if not self.store.is_ready():
            raise Unavailable("Database not configured")

    def _require_writable(self) -> None:
        self._require_ready()
        if not self.store.writable:
            raise Unavailable("Catalog is read-only")

    def list_coffees(self) -> list[CoffeeRecord]:
        self._require_ready()
        return self.store.list_coffees()

    def get_coffee(self, coffee_id: CoffeeId) -> CoffeeRecord:
        self._require_ready()
        coffee = self.store.get_by_id(coffee_id)
        if coffee is None:
            raise NotFound("Coffee not found")
        return coffee

    def get_coffee_by_name(self, name: str) -> CoffeeRecord:
        self._require_ready()
        coffee = self.store.get_by_name(name)
        if coffee is None:
            raise NotFound("Coffee not found")
        return coffee

    def search_by_description(self, text: str) -> list[CoffeeRecord]:
        self._require_ready()
        return self.store.search_by_description(text)

    def patch_coffee(
        self,
        coffee_id: CoffeeId,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> CoffeeRecord:
        fields = {}
        if _clean(name):
            fields["name"] = _clean(name)
        if _clean(description):
            fields["description"] = description
        if not fields:
            raise BadRequest("Provide name or description to update")

        self._require_writable()
        with self._write_lock:
            coffee = self.store.patch(coffee_id, fields)
        if coffee is None:
            raise NotFound("Coffee not found")
        logger.info("Patched coffee %s (%s)", coffee.id, ", ".join(sorted(fields)))
        return coffee

    def add_coffee(
        self,
        name: Optional[str],
        *,
        image: Optional[str] = None,
        description: Optional[str] = None,
    ) -> CoffeeRecord:
        name = _clean(name)
        if not name:
            raise BadRequest("name is required")

        self._require_writable()
        with self._write_lock:
            if self.enforce_unique_names and self.store.get_by_name(name):
                raise Conflict("Coffee with this name already exists")
            coffee = self.store.add(name, image=image or "", description=description or "")
        logger.info("Added coffee %s (%s)", coffee.id, coffee.name)
        return coffee
