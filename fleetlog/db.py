"""
Record storage abstraction: in-memory, JSON document and SQLAlchemy backends.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from sqlalchemy import JSON, Column, String, create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from fleetlog.errors import StoreError
from fleetlog.registry import COLLECTIONS, Collection

logger = logging.getLogger(__name__)


class EntityStore(Protocol):
    """Interface for record storage. Records are plain dicts keyed by ``id``."""

    def ping(self) -> None:
        ...

    def list_records(self, collection: Collection) -> List[dict]:
        ...

    def get_record(self, collection: Collection, record_id: str) -> Optional[dict]:
        ...

    def get_records(self, collection: Collection, record_ids: List[str]) -> List[dict]:
        ...

    def insert_record(self, collection: Collection, record: dict) -> dict:
        ...

    def update_record(
        self, collection: Collection, record_id: str, changes: dict
    ) -> Optional[dict]:
        ...

    def delete_record(self, collection: Collection, record_id: str) -> bool:
        ...

    def upsert_records(self, collection: Collection, records: List[dict]) -> List[dict]:
        ...


class InMemoryEntityStore:
    """
    Process-local document keyed by collection. All access goes through one
    lock and callers only ever see copies, so concurrent requests cannot lose
    each other's writes. Writes build the next version of a collection and
    only replace the current one once ``_persist`` has accepted it.
    """

    def __init__(self, collections: Optional[Iterable[str]] = None):
        self._lock = threading.RLock()
        self.data: Dict[str, List[dict]] = {
            key: [] for key in (collections or COLLECTIONS)
        }

    def ping(self) -> None:
        return None

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.data = {key: [] for key in self.data}

    def _items(self, collection: Collection) -> List[dict]:
        return self.data.get(collection.key, [])

    def _index(self, collection: Collection, record_id: str) -> Optional[int]:
        for index, item in enumerate(self._items(collection)):
            if item.get("id") == record_id:
                return index
        return None

    def _persist(self, document: Dict[str, List[dict]]) -> None:
        """Hook for subclasses that write the document somewhere durable."""

    def _commit(self, collection: Collection, items: List[dict]) -> None:
        document = {**self.data, collection.key: items}
        self._persist(document)
        self.data = document

    def list_records(self, collection: Collection) -> List[dict]:
        with self._lock:
            return copy.deepcopy(self._items(collection))

    def get_record(self, collection: Collection, record_id: str) -> Optional[dict]:
        with self._lock:
            index = self._index(collection, record_id)
            if index is None:
                return None
            return copy.deepcopy(self._items(collection)[index])

    def get_records(self, collection: Collection, record_ids: List[str]) -> List[dict]:
        wanted = set(record_ids)
        with self._lock:
            return copy.deepcopy(
                [item for item in self._items(collection) if item.get("id") in wanted]
            )

    def insert_record(self, collection: Collection, record: dict) -> dict:
        with self._lock:
            if self._index(collection, record["id"]) is not None:
                raise StoreError(f"Duplicate id {record['id']} in {collection.key}")
            stored = copy.deepcopy(record)
            self._commit(collection, self._items(collection) + [stored])
            return copy.deepcopy(stored)

    def update_record(
        self, collection: Collection, record_id: str, changes: dict
    ) -> Optional[dict]:
        with self._lock:
            index = self._index(collection, record_id)
            if index is None:
                return None
            items = list(self._items(collection))
            merged = {**copy.deepcopy(items[index]), **copy.deepcopy(changes)}
            items[index] = merged
            self._commit(collection, items)
            return copy.deepcopy(merged)

    def delete_record(self, collection: Collection, record_id: str) -> bool:
        with self._lock:
            index = self._index(collection, record_id)
            if index is None:
                return False
            items = list(self._items(collection))
            del items[index]
            self._commit(collection, items)
            return True

    def upsert_records(self, collection: Collection, records: List[dict]) -> List[dict]:
        with self._lock:
            items = list(self._items(collection))
            positions = {item.get("id"): index for index, item in enumerate(items)}
            for record in records:
                stored = copy.deepcopy(record)
                index = positions.get(stored["id"])
                if index is None:
                    positions[stored["id"]] = len(items)
                    items.append(stored)
                else:
                    items[index] = stored
            self._commit(collection, items)
            return copy.deepcopy(records)


class JsonFileEntityStore(InMemoryEntityStore):
    """
    Single JSON document on disk with one top-level array per collection.
    The document is loaded once and rewritten atomically after every write.
    """

    def __init__(self, path: str | os.PathLike, collections: Optional[Iterable[str]] = None):
        super().__init__(collections)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if self.path.exists():
                self._load()
            self._persist(self.data)
        logger.info("JSON store ready at %s", self.path)

    def _load(self) -> None:
        try:
            raw = self.path.read_text(encoding="utf-8")
            loaded = json.loads(raw) if raw.strip() else {}
        except (OSError, ValueError) as exc:
            raise StoreError(f"Could not read {self.path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise StoreError(f"{self.path} does not hold a JSON object")
        for key, items in loaded.items():
            if isinstance(items, list):
                self.data[key] = items

    def _persist(self, document: Dict[str, List[dict]]) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StoreError(f"Could not write {self.path}: {exc}") from exc


Base = declarative_base()


class RecordRow(Base):
    __tablename__ = "records"

    collection = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    created_date = Column(String, nullable=True, index=True)
    data = Column(JSON, nullable=False)


class SqlEntityStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlEntityStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _to_record(row: RecordRow) -> dict:
        record = dict(row.data or {})
        record["id"] = row.id
        record["created_date"] = row.created_date
        return record

    @staticmethod
    def _apply(row: RecordRow, record: dict) -> None:
        body = {k: v for k, v in record.items() if k not in ("id", "created_date")}
        row.created_date = record.get("created_date", row.created_date)
        row.data = body

    def ping(self) -> None:
        try:
            with self.Session() as session:
                session.execute(select(RecordRow.id).limit(1))
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def list_records(self, collection: Collection) -> List[dict]:
        try:
            with self.Session() as session:
                stmt = (
                    select(RecordRow)
                    .where(RecordRow.collection == collection.table)
                    .order_by(RecordRow.created_date.asc(), RecordRow.id.asc())
                )
                rows = session.execute(stmt).scalars().all()
                return [self._to_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def get_records(self, collection: Collection, record_ids: List[str]) -> List[dict]:
        if not record_ids:
            return []
        try:
            with self.Session() as session:
                stmt = select(RecordRow).where(
                    RecordRow.collection == collection.table,
                    RecordRow.id.in_(list(record_ids)),
                )
                rows = session.execute(stmt).scalars().all()
                return [self._to_record(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def get_record(self, collection: Collection, record_id: str) -> Optional[dict]:
        try:
            with self.Session() as session:
                row = session.get(RecordRow, (collection.table, record_id))
                return self._to_record(row) if row else None
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def insert_record(self, collection: Collection, record: dict) -> dict:
        try:
            with self.Session() as session:
                row = RecordRow(collection=collection.table, id=record["id"])
                self._apply(row, record)
                session.add(row)
                session.commit()
                return self._to_record(row)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def update_record(
        self, collection: Collection, record_id: str, changes: dict
    ) -> Optional[dict]:
        try:
            with self.Session() as session:
                row = session.get(RecordRow, (collection.table, record_id))
                if not row:
                    return None
                merged = self._to_record(row)
                merged.update(changes)
                merged["id"] = record_id
                self._apply(row, merged)
                session.commit()
                return self._to_record(row)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def delete_record(self, collection: Collection, record_id: str) -> bool:
        try:
            with self.Session() as session:
                result = session.execute(
                    delete(RecordRow).where(
                        RecordRow.collection == collection.table,
                        RecordRow.id == record_id,
                    )
                )
                session.commit()
                return (result.rowcount or 0) > 0
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def upsert_records(self, collection: Collection, records: List[dict]) -> List[dict]:
        try:
            with self.Session() as session:
                for record in records:
                    row = session.get(RecordRow, (collection.table, record["id"]))
                    if row is None:
                        row = RecordRow(collection=collection.table, id=record["id"])
                        session.add(row)
                    self._apply(row, record)
                session.commit()
                return [dict(record) for record in records]
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
