"""
MongoDB-backed catalog store.

Documents keep the integer ``legacyId`` of the JSON file dataset next to
their ObjectId, so lookups accept either form.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from coffee_api.db import UPDATABLE_FIELDS, CoffeeId, CoffeeRecord, parse_int_id
from coffee_api.errors import Conflict, translate_backend_errors

logger = logging.getLogger(__name__)

LIST_ORDER = [("legacyId", ASCENDING), ("_id", ASCENDING)]


class MongoCoffeeStore:
    """Document store implementation backed by a pymongo collection."""

    backend = "mongo"
    writable = True

    def __init__(
        self,
        uri: str | None = None,
        *,
        database: str = "coffee",
        collection_name: str = "coffees",
        timeout_ms: int = 5000,
        collection=None,
    ):
        self.collection = collection
        if self.collection is not None:
            return
        if not uri:
            logger.error("MONGODB_URI is required for MongoCoffeeStore")
            return
        try:
            client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
            self.collection = client[database][collection_name]
        except (PyMongoError, ValueError, TypeError) as exc:
            logger.error("Document store not ready: %s", exc)
            self.collection = None

    def _errors(self):
        return translate_backend_errors(
            "mongo", unavailable=(ConnectionFailure,), failure=(PyMongoError,)
        )

    @staticmethod
    def _to_record(doc: dict) -> CoffeeRecord:
        return CoffeeRecord(
            id=str(doc["_id"]),
            name=doc.get("name") or "",
            image=doc.get("image") or "",
            description=doc.get("description") or "",
        )

    def _find_doc(self, coffee_id: CoffeeId) -> Optional[dict]:
        key = str(coffee_id)
        if ObjectId.is_valid(key):
            doc = self.collection.find_one({"_id": ObjectId(key)})
            if doc:
                return doc
        legacy_id = parse_int_id(coffee_id)
        if legacy_id is None:
            return None
        return self.collection.find_one({"legacyId": legacy_id})

    def _next_legacy_id(self) -> int:
        latest = self.collection.find_one(
            {"legacyId": {"$ne": None}}, sort=[("legacyId", DESCENDING)]
        )
        return int(latest["legacyId"]) + 1 if latest else 1

    def is_ready(self) -> bool:
        return self.collection is not None

    def list_coffees(self) -> list[CoffeeRecord]:
        with self._errors():
            return [self._to_record(doc) for doc in self.collection.find().sort(LIST_ORDER)]

    def get_by_id(self, coffee_id: CoffeeId) -> Optional[CoffeeRecord]:
        with self._errors():
            doc = self._find_doc(coffee_id)
            return self._to_record(doc) if doc else None

    def get_by_name(self, name: str) -> Optional[CoffeeRecord]:
        query = {"name": {"$regex": f"^{re.escape(name)}$", "$options": "i"}}
        with self._errors():
            for doc in self.collection.find(query).sort(LIST_ORDER).limit(1):
                return self._to_record(doc)
            return None

    def search_by_description(self, text: str) -> list[CoffeeRecord]:
        query = {"description": {"$regex": re.escape(text), "$options": "i"}}
        with self._errors():
            return [self._to_record(doc) for doc in self.collection.find(query).sort(LIST_ORDER)]

    def patch(self, coffee_id: CoffeeId, fields: dict) -> Optional[CoffeeRecord]:
        changes = {key: fields[key] for key in UPDATABLE_FIELDS if fields.get(key)}
        with self._errors():
            doc = self._find_doc(coffee_id)
            if not doc:
                return None
            changes["updatedAt"] = datetime.now(timezone.utc)
            updated = self.collection.find_one_and_update(
                {"_id": doc["_id"]},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
            return self._to_record(updated) if updated else None

    def add(self, name: str, image: str = "", description: str = "") -> CoffeeRecord:
        now = datetime.now(timezone.utc)
        with self._errors():
            doc = {
                "name": name,
                "image": image or "",
                "description": description or "",
                "legacyId": self._next_legacy_id(),
                "createdAt": now,
                "updatedAt": now,
            }
            try:
                result = self.collection.insert_one(doc)
            except DuplicateKeyError as exc:
                raise Conflict("Coffee with this name already exists") from exc
            doc["_id"] = result.inserted_id
            return self._to_record(doc)

    def count(self) -> int:
        with self._errors():
            return self.collection.count_documents({})

    def insert_many(self, records: Iterable[CoffeeRecord]) -> int:
        now = datetime.now(timezone.utc)
        docs = [
            {
                "name": r.name,
                "image": r.image or "",
                "description": r.description or "",
                "legacyId": parse_int_id(r.id),
                "createdAt": now,
                "updatedAt": now,
            }
            for r in records
        ]
        if not docs:
            return 0
        with self._errors():
            result = self.collection.insert_many(docs)
            return len(result.inserted_ids)
