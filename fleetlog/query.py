"""
Equality filtering and single-key sorting over lists of record dicts.
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Any, Iterable, List, Mapping, Optional

SORT_PARAM = "sort"


def as_text(value: Any) -> str:
    """String form used for equality filters (matches what the frontend sends)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Mapping):
        return "[object Object]"
    if isinstance(value, (list, tuple)):
        return ",".join(as_text(item) for item in value)
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compare(a: Any, b: Any) -> int:
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    if _is_number(a) and _is_number(b):
        return (a > b) - (a < b)
    left, right = as_text(a).lower(), as_text(b).lower()
    return (left > right) - (left < right)


def apply_filters(records: Iterable[dict], filters: Mapping[str, Any]) -> List[dict]:
    wanted = {
        name: as_text(value)
        for name, value in filters.items()
        if name != SORT_PARAM
    }
    if not wanted:
        return list(records)
    return [
        record
        for record in records
        if all(as_text(record.get(name)) == value for name, value in wanted.items())
    ]


def parse_sort(sort: Optional[str]) -> tuple[Optional[str], bool]:
    """Split ``-field`` / ``field`` into (field, descending)."""
    if not sort:
        return None, False
    if sort.startswith("-"):
        return sort[1:] or None, True
    return sort, False


def sort_records(records: Iterable[dict], sort: Optional[str]) -> List[dict]:
    """
    Stable sort on one field. Missing values go last in ascending order;
    descending order is the ascending list reversed, so they end up first.
    """
    key, descending = parse_sort(sort)
    items = list(records)
    if not key:
        return items
    items.sort(key=cmp_to_key(lambda a, b: _compare(a.get(key), b.get(key))))
    if descending:
        items.reverse()
    return items
