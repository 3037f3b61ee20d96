import unittest

from fleetlog.db import SqlEntityStore
from fleetlog.entities import EntityService
from fleetlog.errors import NotFoundError, StoreError
from fleetlog.registry import get_collection


class SqlEntityStoreTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store logic.
    """

    def setUp(self):
        self.store = SqlEntityStore("sqlite+pysqlite:///:memory:")
        self.service = EntityService(self.store)

    def test_requires_url(self):
        with self.assertRaises(ValueError):
            SqlEntityStore("")

    def test_create_and_get(self):
        created = self.service.create("drivers", {"name": "Alice", "active": True})
        fetched = self.service.get("drivers", created["id"])
        self.assertEqual(fetched, created)
        self.assertIs(fetched["active"], True)

    def test_collections_are_isolated(self):
        self.service.create("customers_il", {"customer": "Acme"})
        self.service.create("customers_pa", {"customer": "Globex"})
        self.assertEqual([c["customer"] for c in self.service.list("customers_il")], ["Acme"])

    def test_update_merges(self):
        created = self.service.create("runs", {"city": "Joliet", "load_type": "pallets"})
        updated = self.service.update("runs", created["id"], {"city": "Aurora"})
        self.assertEqual(updated["city"], "Aurora")
        self.assertEqual(updated["load_type"], "pallets")
        self.assertEqual(updated["created_date"], created["created_date"])

    def test_update_and_delete_missing(self):
        with self.assertRaises(NotFoundError):
            self.service.update("runs", "run_missing", {"city": "x"})
        with self.assertRaises(NotFoundError):
            self.service.delete("runs", "run_missing")

    def test_delete(self):
        created = self.service.create("runs", {"city": "Joliet"})
        self.service.delete("runs", created["id"])
        self.assertEqual(self.service.list("runs"), [])

    def test_duplicate_insert_raises_store_error(self):
        runs = get_collection("runs")
        record = {"id": "run_dup", "created_date": "2024-01-01T00:00:00.000Z"}
        self.store.insert_record(runs, record)
        with self.assertRaises(StoreError):
            self.store.insert_record(runs, record)

    def test_upsert(self):
        pa = get_collection("customers_pa")
        self.store.upsert_records(pa, [{"id": "cpa_1", "created_date": "t", "customer": "A"}])
        self.store.upsert_records(pa, [{"id": "cpa_1", "created_date": "t", "customer": "B"}])
        rows = self.store.list_records(pa)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["customer"], "B")

    def test_ping(self):
        self.store.ping()

    def test_list_orders_by_created_date_then_id(self):
        runs = get_collection("runs")
        self.store.insert_record(runs, {"id": "run_a", "created_date": "2024-03-01T00:00:00.000Z"})
        self.store.insert_record(runs, {"id": "run_c", "created_date": "2024-01-01T00:00:00.000Z"})
        self.store.insert_record(runs, {"id": "run_b", "created_date": "2024-03-01T00:00:00.000Z"})
        self.assertEqual(
            [r["id"] for r in self.store.list_records(runs)], ["run_c", "run_a", "run_b"]
        )

    def test_get_records_by_ids(self):
        runs = get_collection("runs")
        for record_id in ("run_1", "run_2", "run_3"):
            self.store.insert_record(runs, {"id": record_id, "created_date": "t"})
        found = self.store.get_records(runs, ["run_3", "run_1", "run_missing"])
        self.assertEqual(sorted(r["id"] for r in found), ["run_1", "run_3"])
        self.assertEqual(self.store.get_records(runs, []), [])


if __name__ == "__main__":
    unittest.main()
