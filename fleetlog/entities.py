"""
Generic CRUD/query service shared by every registered collection.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from fleetlog.db import EntityStore
from fleetlog.errors import NotFoundError
from fleetlog.query import SORT_PARAM, apply_filters, sort_records
from fleetlog.registry import Collection, get_collection

logger = logging.getLogger(__name__)


def now_iso() -> str:
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def make_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:10]}"


class EntityService:
    def __init__(self, store: EntityStore):
        self.store = store

    def _new_ids(
        self, collection: Collection, count: int, taken: Iterable[str] = ()
    ) -> List[str]:
        """Generate ``count`` unused ids, checking candidates in one lookup per round."""
        ids: List[str] = []
        reserved = set(taken)
        while len(ids) < count:
            candidates = {make_id(collection.id_prefix) for _ in range(count - len(ids))}
            candidates -= reserved
            clashes = {
                record["id"]
                for record in self.store.get_records(collection, sorted(candidates))
            }
            for record_id in sorted(candidates - clashes):
                ids.append(record_id)
                reserved.add(record_id)
            reserved |= clashes
        return ids

    def _new_id(self, collection: Collection) -> str:
        return self._new_ids(collection, 1)[0]

    def list(self, key: str, params: Optional[Mapping[str, Any]] = None) -> List[dict]:
        """
        Return the collection filtered by exact-match params and ordered by the
        optional ``sort`` param (``field`` or ``-field``).
        """
        collection = get_collection(key)
        params = dict(params or {})
        sort = params.pop(SORT_PARAM, None)
        filters = {
            collection.canonical_field(name): value
            for name, value in params.items()
            if value is not None
        }
        records = self.store.list_records(collection)
        records = apply_filters(records, filters)
        return sort_records(records, str(sort) if sort is not None else None)

    def get(self, key: str, record_id: str) -> dict:
        collection = get_collection(key)
        record = self.store.get_record(collection, record_id)
        if record is None:
            raise NotFoundError(key, record_id)
        return record

    def create(self, key: str, payload: Optional[Mapping[str, Any]]) -> dict:
        collection = get_collection(key)
        record = {
            "id": self._new_id(collection),
            "created_date": now_iso(),
            **collection.normalize(payload, creating=True),
        }
        created = self.store.insert_record(collection, record)
        logger.info("Created %s/%s", key, created["id"])
        return created

    def update(self, key: str, record_id: str, payload: Optional[Mapping[str, Any]]) -> dict:
        collection = get_collection(key)
        changes = collection.normalize(payload)
        updated = self.store.update_record(collection, record_id, changes)
        if updated is None:
            raise NotFoundError(key, record_id)
        logger.info("Updated %s/%s (%d fields)", key, record_id, len(changes))
        return updated

    def delete(self, key: str, record_id: str) -> None:
        collection = get_collection(key)
        if not self.store.delete_record(collection, record_id):
            raise NotFoundError(key, record_id)
        logger.info("Deleted %s/%s", key, record_id)

    def bulk_upsert(self, key: str, rows: Iterable[Mapping[str, Any]]) -> List[dict]:
        """
        Insert or merge many rows by ``id`` in a single storage write. Rows
        without an id get a new one; rows that carry no allowed field are skipped.
        """
        collection = get_collection(key)
        pending = []
        for row in rows:
            changes = collection.normalize(row, creating=False)
            if not changes:
                continue
            raw_id = row.get("id") if isinstance(row, Mapping) else None
            record_id = str(raw_id) if raw_id not in (None, "") else None
            pending.append((record_id, row, changes))
        if not pending:
            return []

        given = sorted({record_id for record_id, _, _ in pending if record_id})
        existing = {
            record["id"]: record for record in self.store.get_records(collection, given)
        }
        fresh = iter(
            self._new_ids(
                collection,
                sum(1 for record_id, _, _ in pending if record_id is None),
                taken=given,
            )
        )

        # One entry per id, in first-seen order; repeats merge into it.
        prepared: Dict[str, dict] = {}
        for record_id, row, changes in pending:
            record_id = record_id or next(fresh)
            base = prepared.get(record_id) or existing.get(record_id)
            if base is not None:
                prepared[record_id] = {**base, **changes}
            else:
                prepared[record_id] = {
                    "id": record_id,
                    "created_date": now_iso(),
                    **collection.normalize(row, creating=True),
                }

        written = self.store.upsert_records(collection, list(prepared.values()))
        logger.info("Bulk upserted %d rows into %s", len(written), key)
        return written
