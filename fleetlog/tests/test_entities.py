import re
import unittest
from unittest.mock import MagicMock

from fleetlog.db import InMemoryEntityStore
from fleetlog.entities import EntityService
from fleetlog.errors import NotFoundError, UnknownCollectionError


class EntityServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryEntityStore()
        self.service = EntityService(self.store)

    def test_create_assigns_id_and_timestamp(self):
        created = self.service.create(
            "drivers", {"name": "Alice", "id": "forced", "created_date": "1999-01-01"}
        )
        self.assertRegex(created["id"], r"^drv_[0-9a-f]{10}$")
        self.assertNotEqual(created["created_date"], "1999-01-01")
        self.assertTrue(re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$", created["created_date"]))
        self.assertEqual(created["name"], "Alice")

    def test_created_ids_are_unique(self):
        ids = {self.service.create("runs", {"city": "Aurora"})["id"] for _ in range(50)}
        self.assertEqual(len(ids), 50)

    def test_create_drops_fields_outside_allow_list(self):
        created = self.service.create("drivers", {"name": "Bob", "shoe_size": 11})
        self.assertNotIn("shoe_size", created)
        self.assertNotIn("shoe_size", self.service.get("drivers", created["id"]))

    def test_create_shift_maps_date_and_defaults_status(self):
        created = self.service.create("shifts", {"date": "2024-06-01", "driver_name": "Alice"})
        self.assertEqual(created["shift_date"], "2024-06-01")
        self.assertNotIn("date", created)
        self.assertEqual(created["status"], "active")

    def test_update_merges_and_keeps_other_fields(self):
        created = self.service.create("drivers", {"name": "Alice", "phone": "555-1111"})
        updated = self.service.update("drivers", created["id"], {"phone": "555-2222"})
        self.assertEqual(updated["name"], "Alice")
        self.assertEqual(updated["phone"], "555-2222")
        self.assertEqual(updated["created_date"], created["created_date"])

    def test_update_with_empty_payload_is_a_no_op(self):
        created = self.service.create("drivers", {"name": "Alice"})
        self.assertEqual(self.service.update("drivers", created["id"], {}), created)

    def test_update_cannot_change_id_or_created_date(self):
        created = self.service.create("drivers", {"name": "Alice"})
        updated = self.service.update(
            "drivers", created["id"], {"id": "other", "created_date": "2000-01-01"}
        )
        self.assertEqual(updated, created)

    def test_update_does_not_reapply_create_defaults(self):
        shift = self.service.create("shifts", {"status": "completed"})
        updated = self.service.update("shifts", shift["id"], {"notes": "late"})
        self.assertEqual(updated["status"], "completed")

    def test_update_missing_raises_not_found(self):
        self.service.create("drivers", {"name": "Alice"})
        before = self.service.list("drivers")
        with self.assertRaises(NotFoundError):
            self.service.update("drivers", "drv_missing", {"name": "X"})
        self.assertEqual(self.service.list("drivers"), before)

    def test_delete_removes_record(self):
        created = self.service.create("drivers", {"name": "Alice"})
        self.service.delete("drivers", created["id"])
        self.assertEqual(self.service.list("drivers"), [])
        with self.assertRaises(NotFoundError):
            self.service.delete("drivers", created["id"])

    def test_list_filters_and_sorts(self):
        for name, state in [("carol", "IL"), ("Alice", "IL"), ("Bob", "PA"), ("dave", "IL")]:
            self.service.create("drivers", {"name": name, "state": state})
        names = [d["name"] for d in self.service.list("drivers", {"state": "IL", "sort": "name"})]
        self.assertEqual(names, ["Alice", "carol", "dave"])
        names = [d["name"] for d in self.service.list("drivers", {"sort": "-name"})]
        self.assertEqual(names, ["dave", "carol", "Bob", "Alice"])

    def test_list_filter_aliases_map_to_canonical_field(self):
        self.service.create("shifts", {"shift_date": "2024-06-01"})
        self.service.create("shifts", {"shift_date": "2024-06-02"})
        result = self.service.list("shifts", {"date": "2024-06-02"})
        self.assertEqual([s["shift_date"] for s in result], ["2024-06-02"])

    def test_list_returns_copies(self):
        created = self.service.create("drivers", {"name": "Alice"})
        listed = self.service.list("drivers")
        listed[0]["name"] = "Mallory"
        self.assertEqual(self.service.get("drivers", created["id"])["name"], "Alice")

    def test_unknown_collection(self):
        with self.assertRaises(UnknownCollectionError):
            self.service.list("trucks")
        with self.assertRaises(UnknownCollectionError):
            self.service.create("trucks", {})

    def test_bulk_upsert_inserts_and_merges(self):
        existing = self.service.create("customers_il", {"customer": "Acme", "contact": "Ann"})
        written = self.service.bulk_upsert(
            "customers_il",
            [
                {"id": existing["id"], "contact": "Bea"},
                {"id": "cil_seed000001", "customer": "Globex"},
                {"customer": "Initech"},
                {"unknown": "dropped"},
            ],
        )
        self.assertEqual(len(written), 3)
        merged = self.service.get("customers_il", existing["id"])
        self.assertEqual(merged["customer"], "Acme")
        self.assertEqual(merged["contact"], "Bea")
        self.assertEqual(merged["created_date"], existing["created_date"])
        self.assertEqual(self.service.get("customers_il", "cil_seed000001")["customer"], "Globex")
        self.assertEqual(len(self.service.list("customers_il")), 3)

    def test_bulk_upsert_empty(self):
        self.assertEqual(self.service.bulk_upsert("customers_pa", []), [])

    def test_bulk_upsert_merges_repeated_ids_into_one_row(self):
        written = self.service.bulk_upsert(
            "customers_pa",
            [
                {"id": "cpa_dup", "customer": "Acme", "contact": "Ann"},
                {"customer": "Globex"},
                {"id": "cpa_dup", "contact": "Bea"},
            ],
        )
        self.assertEqual(written[0]["id"], "cpa_dup")
        self.assertEqual(len(written), 2)
        stored = self.service.get("customers_pa", "cpa_dup")
        self.assertEqual(stored["customer"], "Acme")
        self.assertEqual(stored["contact"], "Bea")
        self.assertEqual(len(self.service.list("customers_pa")), 2)

    def test_bulk_upsert_fetches_existing_rows_in_one_call(self):
        store = MagicMock(wraps=InMemoryEntityStore())
        service = EntityService(store)
        first = service.create("customers_il", {"customer": "Acme"})
        second = service.create("customers_il", {"customer": "Globex"})
        store.reset_mock()

        written = service.bulk_upsert(
            "customers_il",
            [
                {"id": first["id"], "contact": "Ann"},
                {"id": second["id"], "contact": "Bob"},
                {"customer": "Initech"},
                {"customer": "Umbrella"},
            ],
        )
        self.assertEqual(len(written), 4)
        store.get_record.assert_not_called()
        id_lookups = [c.args[1] for c in store.get_records.call_args_list]
        self.assertIn(sorted([first["id"], second["id"]]), id_lookups)
        self.assertEqual(len(id_lookups), 2)
        store.upsert_records.assert_called_once()
        self.assertEqual(service.get("customers_il", first["id"])["contact"], "Ann")
        self.assertEqual(service.get("customers_il", first["id"])["customer"], "Acme")


if __name__ == "__main__":
    unittest.main()
