"""
Storage adapters for the coffee catalog: a JSON file store and a
SQLAlchemy-backed relational store (Supabase/Postgres, or SQLite for tests).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

from sqlalchemy import Column, Integer, String, create_engine, func, select
from sqlalchemy.exc import (
    DisconnectionError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from coffee_api.errors import Conflict, translate_backend_errors

logger = logging.getLogger(__name__)

CoffeeId = Union[int, str]


@dataclass
class CoffeeRecord:
    id: CoffeeId
    name: str
    image: str = ""
    description: str = ""

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CoffeeRecord":
        raw_id = data.get("id")
        parsed = parse_int_id(raw_id)
        return cls(
            id=parsed if parsed is not None else raw_id,
            name=str(data.get("name") or ""),
            image=str(data.get("image") or ""),
            description=str(data.get("description") or ""),
        )


class CoffeeStore(Protocol):
    """Interface every catalog backend implements."""

    backend: str
    writable: bool

    def is_ready(self) -> bool:
        ...

    def list_coffees(self) -> list[CoffeeRecord]:
        ...

    def get_by_id(self, coffee_id: CoffeeId) -> Optional[CoffeeRecord]:
        ...

    def get_by_name(self, name: str) -> Optional[CoffeeRecord]:
        ...

    def search_by_description(self, text: str) -> list[CoffeeRecord]:
        ...

    def patch(self, coffee_id: CoffeeId, fields: dict) -> Optional[CoffeeRecord]:
        ...

    def add(self, name: str, image: str = "", description: str = "") -> CoffeeRecord:
        ...

    def count(self) -> int:
        ...

    def insert_many(self, records: Iterable[CoffeeRecord]) -> int:
        ...


MAX_INT_ID = 2**63 - 1


def parse_int_id(value) -> Optional[int]:
    """
    Return ``value`` as an int id, or None when it is not one.

    Ids outside the signed 64-bit range are rejected, since neither SQL
    drivers nor BSON can bind them.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    else:
        try:
            parsed = int(str(value).strip())
        except (TypeError, ValueError):
            return None
    if -MAX_INT_ID - 1 <= parsed <= MAX_INT_ID:
        return parsed
    return None


UPDATABLE_FIELDS = ("name", "description")


class FileCoffeeStore:
    """
    Keeps the whole catalog in memory and rewrites the JSON file after
    every mutation.
    """

    backend = "file"

    def __init__(self, path: str | os.PathLike, *, writable: bool = True):
        self.path = Path(path)
        self.writable = writable
        self._ready = True
        self.coffees: list[CoffeeRecord] = []
        try:
            self.coffees = self._load()
        except (OSError, ValueError) as exc:
            logger.error("Could not load coffee file %s: %s", self.path, exc)
            self._ready = False

    def _load(self) -> list[CoffeeRecord]:
        if not self.path.exists():
            logger.warning("Coffee file %s not found, starting empty", self.path)
            return []
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"{self.path} must contain a JSON array")
        coffees = [CoffeeRecord.from_dict(item) for item in data if isinstance(item, dict)]
        # Later records with a missing, malformed or repeated id get max + 1.
        seen: set[int] = set()
        for coffee in coffees:
            if not isinstance(coffee.id, int) or coffee.id in seen:
                coffee.id = max((c.id for c in coffees if isinstance(c.id, int)), default=0) + 1
            seen.add(coffee.id)
        return coffees

    def _save(self) -> None:
        payload = [coffee.as_dict() for coffee in self.coffees]
        with translate_backend_errors("file", failure=(OSError, TypeError, ValueError)):
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=".coffees-", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise

    def _find(self, coffee_id: CoffeeId) -> Optional[CoffeeRecord]:
        wanted = parse_int_id(coffee_id)
        if wanted is None:
            return None
        for coffee in self.coffees:
            if coffee.id == wanted:
                return coffee
        return None

    def _next_id(self) -> int:
        ids = [c.id for c in self.coffees if isinstance(c.id, int)]
        return max(ids, default=0) + 1

    def is_ready(self) -> bool:
        return self._ready

    def list_coffees(self) -> list[CoffeeRecord]:
        return [replace(c) for c in sorted(self.coffees, key=lambda c: c.id)]

    def get_by_id(self, coffee_id: CoffeeId) -> Optional[CoffeeRecord]:
        coffee = self._find(coffee_id)
        return replace(coffee) if coffee else None

    def get_by_name(self, name: str) -> Optional[CoffeeRecord]:
        wanted = name.lower()
        for coffee in self.list_coffees():
            if coffee.name.lower() == wanted:
                return coffee
        return None

    def search_by_description(self, text: str) -> list[CoffeeRecord]:
        needle = text.lower()
        return [c for c in self.list_coffees() if needle in c.description.lower()]

    def patch(self, coffee_id: CoffeeId, fields: dict) -> Optional[CoffeeRecord]:
        coffee = self._find(coffee_id)
        if coffee is None:
            return None
        previous = replace(coffee)
        for key in UPDATABLE_FIELDS:
            if fields.get(key):
                setattr(coffee, key, fields[key])
        try:
            self._save()
        except Exception:
            coffee.name, coffee.description = previous.name, previous.description
            raise
        return replace(coffee)

    def add(self, name: str, image: str = "", description: str = "") -> CoffeeRecord:
        coffee = CoffeeRecord(
            id=self._next_id(), name=name, image=image or "", description=description or ""
        )
        self.coffees.append(coffee)
        try:
            self._save()
        except Exception:
            self.coffees.pop()
            raise
        return replace(coffee)

    def count(self) -> int:
        return len(self.coffees)

    def insert_many(self, records: Iterable[CoffeeRecord]) -> int:
        added = []
        for record in records:
            coffee = replace(record)
            if parse_int_id(coffee.id) is None or self._find(coffee.id):
                coffee.id = self._next_id()
            else:
                coffee.id = parse_int_id(coffee.id)
            self.coffees.append(coffee)
            added.append(coffee)
        if not added:
            return 0
        try:
            self._save()
        except Exception:
            del self.coffees[-len(added):]
            raise
        return len(added)


Base = declarative_base()


class CoffeeRow(Base):
    __tablename__ = "coffees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)
    image = Column(String, nullable=False, default="")
    description = Column(String, nullable=False, default="")


SQL_UNAVAILABLE = (OperationalError, DisconnectionError)


class SqlCoffeeStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (Supabase
    Postgres in production, SQLite for tests).
    """

    backend = "sql"
    writable = True

    def __init__(self, database_url: str):
        self.engine = None
        self.Session = None
        if not database_url:
            logger.error("DATABASE_URL is required for SqlCoffeeStore")
            return
        try:
            self.engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
            Base.metadata.create_all(self.engine)
        except (SQLAlchemyError, ImportError, ValueError) as exc:
            logger.error("Relational store not ready: %s", exc)
            self.engine = None
            return
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )

    def _errors(self):
        return translate_backend_errors(
            "sql", unavailable=SQL_UNAVAILABLE, failure=(SQLAlchemyError,)
        )

    @staticmethod
    def _to_record(row: CoffeeRow) -> CoffeeRecord:
        return CoffeeRecord(
            id=row.id,
            name=row.name,
            image=row.image or "",
            description=row.description or "",
        )

    def is_ready(self) -> bool:
        return self.Session is not None

    def list_coffees(self) -> list[CoffeeRecord]:
        with self._errors(), self.Session() as session:
            rows = session.execute(
                select(CoffeeRow).order_by(CoffeeRow.id.asc())
            ).scalars().all()
            return [self._to_record(row) for row in rows]

    def get_by_id(self, coffee_id: CoffeeId) -> Optional[CoffeeRecord]:
        wanted = parse_int_id(coffee_id)
        if wanted is None:
            return None
        with self._errors(), self.Session() as session:
            row = session.get(CoffeeRow, wanted)
            return self._to_record(row) if row else None

    def get_by_name(self, name: str) -> Optional[CoffeeRecord]:
        # SQLite's lower() folds ASCII only, so non-ASCII names compare
        # case-sensitively there; Postgres folds them.
        stmt = (
            select(CoffeeRow)
            .where(func.lower(CoffeeRow.name) == name.lower())
            .order_by(CoffeeRow.id.asc())
            .limit(1)
        )
        with self._errors(), self.Session() as session:
            row = session.execute(stmt).scalars().first()
            return self._to_record(row) if row else None

    def search_by_description(self, text: str) -> list[CoffeeRecord]:
        stmt = (
            select(CoffeeRow)
            .where(CoffeeRow.description.icontains(text, autoescape=True))
            .order_by(CoffeeRow.id.asc())
        )
        with self._errors(), self.Session() as session:
            return [self._to_record(row) for row in session.execute(stmt).scalars().all()]

    def patch(self, coffee_id: CoffeeId, fields: dict) -> Optional[CoffeeRecord]:
        wanted = parse_int_id(coffee_id)
        if wanted is None:
            return None
        with self._errors(), self.Session() as session:
            row = session.get(CoffeeRow, wanted)
            if not row:
                return None
            for key in UPDATABLE_FIELDS:
                if fields.get(key):
                    setattr(row, key, fields[key])
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def add(self, name: str, image: str = "", description: str = "") -> CoffeeRecord:
        with self._errors(), self.Session() as session:
            row = CoffeeRow(name=name, image=image or "", description=description or "")
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise Conflict("Coffee with this name already exists") from exc
            session.refresh(row)
            return self._to_record(row)

    def count(self) -> int:
        with self._errors(), self.Session() as session:
            return session.execute(select(func.count()).select_from(CoffeeRow)).scalar_one()

    def insert_many(self, records: Iterable[CoffeeRecord]) -> int:
        # Ids are left to the database so its sequence stays in step.
        rows = [
            CoffeeRow(name=r.name, image=r.image or "", description=r.description or "")
            for r in records
        ]
        if not rows:
            return 0
        with self._errors(), self.Session() as session:
            session.add_all(rows)
            session.commit()
            return len(rows)
