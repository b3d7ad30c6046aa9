"""
Bootstrap an empty networked backend from the bundled JSON snapshot.
"""

from __future__ import annotations

import json
import logging
import os

from coffee_api.db import CoffeeRecord, CoffeeStore
from coffee_api.errors import CatalogError

logger = logging.getLogger(__name__)


def load_snapshot(path: str | os.PathLike) -> list[CoffeeRecord]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array")
    return [
        CoffeeRecord.from_dict(item)
        for item in data
        if isinstance(item, dict) and item.get("name")
    ]


def seed_if_empty(
    store: CoffeeStore, records: list[CoffeeRecord], *, force: bool = False
) -> int:
    """
    Insert ``records`` when the store holds no coffees (or when ``force``).
    Returns the number of inserted records. Store errors propagate.
    """
    existing = store.count()
    if existing and not force:
        logger.info("Skipping seed: %s backend already has %d coffees", store.backend, existing)
        return 0
    inserted = store.insert_many(records)
    logger.info("Seeded %d coffees into %s backend", inserted, store.backend)
    return inserted


def seed_on_startup(store: CoffeeStore, snapshot_path: str | os.PathLike) -> int:
    """Best-effort seeding used at application startup; never raises."""
    if not store.is_ready():
        logger.warning("Skipping seed: %s backend is not ready", store.backend)
        return 0
    try:
        return seed_if_empty(store, load_snapshot(snapshot_path))
    except (CatalogError, OSError, ValueError) as exc:
        logger.warning("Seeding %s backend failed: %s", store.backend, exc)
        return 0
