import os
import tempfile
import threading
import time
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

from coffee_api.db import CoffeeRecord, FileCoffeeStore
from coffee_api.errors import BadRequest, Conflict, NotFound, Unavailable
from coffee_api.service import CatalogService


class CatalogServiceTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = FileCoffeeStore(os.path.join(self._tmp.name, "coffees.json"))
        self.service = CatalogService(self.store)

    def tearDown(self):
        self._tmp.cleanup()

    def test_add_strips_name_and_defaults_fields(self):
        coffee = self.service.add_coffee("  Mocha  ")
        self.assertEqual(coffee, CoffeeRecord(id=1, name="Mocha", image="", description=""))

    def test_add_requires_name(self):
        for name in (None, "", "   "):
            with self.subTest(name=name):
                with self.assertRaises(BadRequest):
                    self.service.add_coffee(name)
        self.assertEqual(self.store.count(), 0)

    def test_duplicate_names(self):
        self.service.add_coffee("Latte")
        with self.assertRaises(Conflict):
            self.service.add_coffee("LATTE")

        lenient = CatalogService(self.store, enforce_unique_names=False)
        self.assertEqual(lenient.add_coffee("latte").id, 2)

    def test_patch_requires_an_updatable_field(self):
        coffee = self.service.add_coffee("Latte", description="Milky")
        with self.assertRaises(BadRequest):
            self.service.patch_coffee(coffee.id, name=" ", description="")
        self.assertEqual(self.service.get_coffee(coffee.id), coffee)

    def test_patch_unknown_coffee(self):
        with self.assertRaises(NotFound):
            self.service.patch_coffee(5, name="Ghost")

    def test_lookups_raise_not_found(self):
        with self.assertRaises(NotFound):
            self.service.get_coffee(1)
        with self.assertRaises(NotFound):
            self.service.get_coffee_by_name("latte")
        self.assertEqual(self.service.search_by_description("milk"), [])

    def test_not_ready_store_never_touched(self):
        store = MagicMock()
        store.is_ready.return_value = False
        service = CatalogService(store)
        with self.assertRaises(Unavailable) as ctx:
            service.list_coffees()
        self.assertEqual(ctx.exception.message, "Database not configured")
        with self.assertRaises(Unavailable):
            service.add_coffee("Mocha")
        store.list_coffees.assert_not_called()
        store.add.assert_not_called()

    def test_read_only_store_rejects_mutations(self):
        self.store.writable = False
        with self.assertRaises(Unavailable):
            self.service.add_coffee("Mocha")
        with self.assertRaises(Unavailable):
            self.service.patch_coffee(1, name="Mocha")


class ConcurrentWriteTests(unittest.TestCase):
    WORKERS = 8

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = FileCoffeeStore(os.path.join(self._tmp.name, "coffees.json"))
        self.service = CatalogService(self.store)
        self.start = threading.Barrier(self.WORKERS)
        next_id = self.store._next_id

        def slow_next_id():
            value = next_id()
            time.sleep(0.01)
            return value

        patcher = patch.object(self.store, "_next_id", side_effect=slow_next_id)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self._tmp.cleanup()

    def _add(self, name):
        self.start.wait()
        try:
            return self.service.add_coffee(name)
        except Conflict as exc:
            return exc

    def test_parallel_adds_get_unique_consecutive_ids(self):
        names = [f"Coffee {i}" for i in range(self.WORKERS)]
        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            added = list(pool.map(self._add, names))

        self.assertEqual(sorted(c.id for c in added), list(range(1, self.WORKERS + 1)))
        self.assertEqual(
            sorted(c.id for c in self.store.list_coffees()),
            list(range(1, self.WORKERS + 1)),
        )

    def test_parallel_same_name_adds_create_one_record(self):
        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            results = list(pool.map(self._add, ["Latte"] * self.WORKERS))

        created = [r for r in results if isinstance(r, CoffeeRecord)]
        conflicts = [r for r in results if isinstance(r, Conflict)]
        self.assertEqual(len(created), 1)
        self.assertEqual(len(conflicts), self.WORKERS - 1)
        self.assertEqual(self.store.count(), 1)


if __name__ == "__main__":
    unittest.main()
