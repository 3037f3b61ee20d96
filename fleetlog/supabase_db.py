"""
Supabase (hosted Postgres) record storage, one table per collection.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from fleetlog.errors import ConfigurationError, StoreError
from fleetlog.registry import Collection

logger = logging.getLogger(__name__)


def _iso(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (
        parsed.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class SupabaseEntityStore:
    """
    Tables carry ``created_at`` (timestamptz); the API exposes it as
    ``created_date`` in the same ISO format the other stores use.
    """

    def __init__(
        self,
        url: Optional[str],
        service_role_key: Optional[str],
        client: Optional[Client] = None,
    ):
        if client is None:
            if not url or not service_role_key:
                raise ConfigurationError(
                    "Missing env vars. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY."
                )
            client = create_client(url, service_role_key)
        self.client = client

    @staticmethod
    def _to_row(record: dict) -> dict:
        row = dict(record)
        if "created_date" in row:
            row["created_at"] = row.pop("created_date")
        return row

    @staticmethod
    def _to_record(row: dict) -> dict:
        record = dict(row)
        created = record.pop("created_at", None)
        if record.get("created_date") is None and created is not None:
            record["created_date"] = _iso(created)
        return record

    def _execute(self, query) -> List[dict]:
        try:
            response = query.execute()
        except APIError as exc:
            logger.error("Supabase request failed: %s", exc.message)
            raise StoreError(exc.message or str(exc)) from exc
        return list(response.data or [])

    def ping(self) -> None:
        self._execute(self.client.table("drivers").select("id").limit(1))
        logger.info("Supabase connected OK")

    def list_records(self, collection: Collection) -> List[dict]:
        rows = self._execute(self.client.table(collection.table).select("*"))
        return [self._to_record(row) for row in rows]

    def get_record(self, collection: Collection, record_id: str) -> Optional[dict]:
        rows = self._execute(
            self.client.table(collection.table).select("*").eq("id", record_id).limit(1)
        )
        return self._to_record(rows[0]) if rows else None

    def get_records(self, collection: Collection, record_ids: List[str]) -> List[dict]:
        if not record_ids:
            return []
        rows = self._execute(
            self.client.table(collection.table).select("*").in_("id", list(record_ids))
        )
        return [self._to_record(row) for row in rows]

    def insert_record(self, collection: Collection, record: dict) -> dict:
        rows = self._execute(
            self.client.table(collection.table).insert(self._to_row(record))
        )
        return self._to_record(rows[0]) if rows else dict(record)

    def update_record(
        self, collection: Collection, record_id: str, changes: dict
    ) -> Optional[dict]:
        table = self.client.table(collection.table)
        if not changes:
            return self.get_record(collection, record_id)
        rows = self._execute(table.update(self._to_row(changes)).eq("id", record_id))
        return self._to_record(rows[0]) if rows else None

    def delete_record(self, collection: Collection, record_id: str) -> bool:
        rows = self._execute(
            self.client.table(collection.table).delete().eq("id", record_id)
        )
        return bool(rows)

    def upsert_records(self, collection: Collection, records: List[dict]) -> List[dict]:
        if not records:
            return []
        rows = self._execute(
            self.client.table(collection.table).upsert(
                [self._to_row(record) for record in records], on_conflict="id"
            )
        )
        return [self._to_record(row) for row in rows]
