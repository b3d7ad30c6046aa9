"""
CLI helper to seed the configured catalog backend from a JSON snapshot.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from coffee_api.config import get_settings
from coffee_api.dependencies import build_store
from coffee_api.errors import CatalogError
from coffee_api.logging_config import setup_logging
from coffee_api.seed import load_snapshot, seed_if_empty


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the coffee catalog")
    parser.add_argument(
        "-s",
        "--snapshot",
        type=str,
        default=None,
        help="JSON snapshot to load (defaults to COFFEES_FILE)",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Insert even when the collection already has coffees",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.log_level)
    store = build_store(settings)
    if not store.is_ready():
        logging.getLogger(__name__).error("%s backend is not ready", store.backend)
        return 1

    try:
        records = load_snapshot(args.snapshot or settings.coffees_file)
        if not args.force and store.count():
            return 0
        inserted = seed_if_empty(store, records, force=args.force)
    except (CatalogError, OSError, ValueError) as exc:
        logging.getLogger(__name__).error("Seeding failed: %s", exc)
        return 1
    return 0 if inserted > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
