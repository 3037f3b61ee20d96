import unittest

from fleetlog.query import apply_filters, as_text, parse_sort, sort_records


class FilterTests(unittest.TestCase):
    def setUp(self):
        self.records = [
            {"id": "a", "state": "IL", "active": True, "miles": 12.0},
            {"id": "b", "state": "PA", "active": False, "miles": 7},
            {"id": "c", "state": "il", "active": None},
            {"id": "d"},
        ]

    def test_exact_match_is_case_sensitive(self):
        result = apply_filters(self.records, {"state": "IL"})
        self.assertEqual([r["id"] for r in result], ["a"])

    def test_sort_param_is_not_a_filter(self):
        result = apply_filters(self.records, {"sort": "name"})
        self.assertEqual(len(result), 4)

    def test_missing_fields_only_match_empty_string(self):
        result = apply_filters(self.records, {"state": ""})
        self.assertEqual([r["id"] for r in result], ["d"])

    def test_values_compare_by_string_form(self):
        self.assertEqual([r["id"] for r in apply_filters(self.records, {"active": "true"})], ["a"])
        self.assertEqual([r["id"] for r in apply_filters(self.records, {"miles": "12"})], ["a"])
        self.assertEqual([r["id"] for r in apply_filters(self.records, {"miles": 7})], ["b"])

    def test_all_filters_must_match(self):
        result = apply_filters(self.records, {"state": "IL", "active": "false"})
        self.assertEqual(result, [])

    def test_as_text(self):
        self.assertEqual(as_text(None), "")
        self.assertEqual(as_text(False), "false")
        self.assertEqual(as_text(3.5), "3.5")
        self.assertEqual(as_text(4.0), "4")
        self.assertEqual(as_text({"a": 1}), "[object Object]")
        self.assertEqual(as_text(["IL", 2, None, True]), "IL,2,,true")
        self.assertEqual(as_text([]), "")


class SortTests(unittest.TestCase):
    def test_parse_sort(self):
        self.assertEqual(parse_sort("-name"), ("name", True))
        self.assertEqual(parse_sort("name"), ("name", False))
        self.assertEqual(parse_sort(None), (None, False))

    def test_ascending_is_case_insensitive_with_nulls_last(self):
        records = [{"name": "bob"}, {"name": None}, {"name": "Alice"}, {}, {"name": "carol"}]
        result = [r.get("name") for r in sort_records(records, "name")]
        self.assertEqual(result, ["Alice", "bob", "carol", None, None])

    def test_descending_is_reverse_of_ascending(self):
        records = [{"id": 1, "name": "bob"}, {"id": 2}, {"id": 3, "name": "Alice"}]
        ascending = sort_records(records, "name")
        descending = sort_records(records, "-name")
        self.assertEqual(descending, list(reversed(ascending)))
        self.assertEqual(descending[0]["id"], 2)

    def test_numbers_compare_numerically(self):
        records = [{"n": 10}, {"n": 9}, {"n": 100}]
        self.assertEqual([r["n"] for r in sort_records(records, "n")], [9, 10, 100])

    def test_sort_is_stable_and_returns_new_list(self):
        records = [{"id": "x", "s": "a"}, {"id": "y", "s": "A"}, {"id": "z", "s": "a"}]
        result = sort_records(records, "s")
        self.assertEqual([r["id"] for r in result], ["x", "y", "z"])
        self.assertIsNot(result, records)

    def test_no_sort_keeps_order(self):
        records = [{"id": 2}, {"id": 1}]
        self.assertEqual(sort_records(records, None), records)


if __name__ == "__main__":
    unittest.main()
