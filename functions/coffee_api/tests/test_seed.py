import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock

import mongomock

from coffee_api.config import DEFAULT_COFFEES_FILE
from coffee_api.db import SqlCoffeeStore
from coffee_api.errors import Unavailable
from coffee_api.mongo import MongoCoffeeStore
from coffee_api.seed import load_snapshot, seed_if_empty, seed_on_startup


class SeedTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.snapshot = os.path.join(self._tmp.name, "snapshot.json")
        with open(self.snapshot, "w", encoding="utf-8") as f:
            json.dump(
                [
                    {"id": 1, "name": "Espresso", "image": "e.png", "description": "Short"},
                    {"id": 2, "name": "Latte"},
                    {"id": 3, "description": "nameless rows are skipped"},
                ],
                f,
            )

    def tearDown(self):
        self._tmp.cleanup()

    def test_bundled_snapshot_loads(self):
        records = load_snapshot(DEFAULT_COFFEES_FILE)
        self.assertTrue(records)
        self.assertEqual(len({r.id for r in records}), len(records))

    def test_seeds_empty_relational_store_once(self):
        store = SqlCoffeeStore("sqlite+pysqlite:///:memory:")
        records = load_snapshot(self.snapshot)
        self.assertEqual(seed_if_empty(store, records), 2)
        self.assertEqual(seed_if_empty(store, records), 0)
        self.assertEqual(seed_if_empty(store, records, force=True), 2)
        self.assertEqual(store.count(), 4)

    def test_seed_keeps_legacy_ids_in_document_store(self):
        store = MongoCoffeeStore(collection=mongomock.MongoClient().db.coffees)
        self.assertEqual(seed_on_startup(store, self.snapshot), 2)
        self.assertEqual(store.get_by_id(2).name, "Latte")

    def test_startup_seed_swallows_backend_failures(self):
        store = MagicMock()
        store.backend = "mongo"
        store.is_ready.return_value = True
        store.count.side_effect = Unavailable("Database unavailable")
        self.assertEqual(seed_on_startup(store, self.snapshot), 0)

    def test_startup_seed_skips_missing_snapshot_and_unready_store(self):
        store = SqlCoffeeStore("sqlite+pysqlite:///:memory:")
        self.assertEqual(seed_on_startup(store, os.path.join(self._tmp.name, "nope.json")), 0)
        self.assertEqual(seed_on_startup(SqlCoffeeStore(""), self.snapshot), 0)


if __name__ == "__main__":
    unittest.main()
