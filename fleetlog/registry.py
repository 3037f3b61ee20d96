"""
Static registry of the collections exposed by the API.

Each entry names where the collection lives in storage, the URL slug it is
mounted under, the prefix used for generated ids, and the write contract:
allowed fields, legacy/camelCase aliases and create-time defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from fleetlog.errors import UnknownCollectionError

ID_FIELD = "id"
CREATED_FIELD = "created_date"

# Columns the server owns; clients can never set them.
SERVER_MANAGED_FIELDS = frozenset({"id", "created_date", "created_at"})

COMMON_ALIASES: Mapping[str, str] = {
    "createdDate": "created_date",
    "createdAt": "created_at",
}


@dataclass(frozen=True)
class Collection:
    key: str
    table: str
    slug: str
    id_prefix: str
    fields: Tuple[str, ...]
    aliases: Mapping[str, str] = field(default_factory=dict)
    defaults: Mapping[str, Any] = field(default_factory=dict)
    bulk: bool = False

    def allows(self, name: str) -> bool:
        return name in self.fields

    def canonical_field(self, name: str) -> str:
        """Map a filter or payload key to the stored field name."""
        if name == "created_at":
            return CREATED_FIELD
        if name in self.fields or name in SERVER_MANAGED_FIELDS:
            return name
        alias = self.aliases.get(name) or COMMON_ALIASES.get(name)
        if alias == "created_at":
            return CREATED_FIELD
        return alias or name

    def normalize(self, payload: Optional[Mapping[str, Any]], *, creating: bool = False) -> Dict[str, Any]:
        """
        Rewrite aliases, drop server-managed and unknown keys, and (on create)
        fill defaults for missing or blank fields.
        """
        out: Dict[str, Any] = dict(payload or {})
        for aliases in (COMMON_ALIASES, self.aliases):
            for source, target in aliases.items():
                if source in out and target not in out:
                    out[target] = out.pop(source)

        cleaned = {
            name: value
            for name, value in out.items()
            if name not in SERVER_MANAGED_FIELDS and self.allows(name)
        }
        if creating:
            for name, value in self.defaults.items():
                if cleaned.get(name) in (None, ""):
                    cleaned[name] = value
        return cleaned


_PRICE_FIELDS = (
    "price_48x40_1",
    "price_48x40_2",
    "price_large_odd",
    "price_small_odd",
    "price_trash",
    "price_chep_peco",
    "price_expendable",
    "price_scrap_full_truck",
    "price_bailed_cardboard",
)

_PALLET_FIELDS = (
    "pallet_48x40_1",
    "pallet_48x40_2",
    "large_odd",
    "small_odd",
    "chep_peco",
    "scrap_pull",
    "trash_pallets",
    "euro_pallets",
    "block_pallets",
    "stringer_pallets",
    "plastic_pallets",
    "bailed_cardboard",
    "occ",
    "boxes_of_plastic",
    "bailed_plastic",
    "gaylords",
    "boxes",
    "tops",
    "ibc_crates",
    "totes",
)

_ENTRIES = (
    Collection(
        key="drivers",
        table="drivers",
        slug="drivers",
        id_prefix="drv",
        fields=("name", "phone", "state", "status", "active", "unit_number", "notes"),
    ),
    Collection(
        key="shifts",
        table="shifts",
        slug="shifts",
        id_prefix="shf",
        fields=(
            "shift_date",
            "shift_type",
            "status",
            "attendance_status",
            "driver_id",
            "driver_name",
            "unit_number",
            "start_time",
            "end_time",
            "start_odometer",
            "end_odometer",
            "notes",
        ),
        aliases={
            "date": "shift_date",
            "shiftDate": "shift_date",
            "shiftType": "shift_type",
            "startTime": "start_time",
            "endTime": "end_time",
            "starting_odometer": "start_odometer",
            "ending_odometer": "end_odometer",
            "driverId": "driver_id",
            "driverName": "driver_name",
            "unitNumber": "unit_number",
        },
        defaults={"status": "active"},
    ),
    Collection(
        key="runs",
        table="runs",
        slug="runs",
        id_prefix="run",
        fields=(
            "shift_id",
            "driver_id",
            "driver_name",
            "run_date",
            "run_type",
            "city",
            "customer_name",
            "trailer_dropped",
            "trailer_picked_up",
            "load_type",
            "arrival_time",
            "departure_time",
            "notes",
        ),
        aliases={
            "date": "run_date",
            "runDate": "run_date",
            "driverId": "driver_id",
            "shiftId": "shift_id",
            "loadType": "load_type",
            "runType": "run_type",
        },
    ),
    Collection(
        key="schedules",
        table="schedules",
        slug="schedules",
        id_prefix="sch",
        fields=(
            "date",
            "driver_name",
            "shift_type",
            "state",
            "unit_number",
            "planned_city",
            "planned_customer",
            "notes",
            "data",
        ),
        aliases={"scheduleDate": "date", "schedule_date": "date"},
    ),
    Collection(
        key="customLoadTypes",
        table="custom_load_types",
        slug="custom-load-types",
        id_prefix="clt",
        fields=("name",),
        aliases={"label": "name", "loadTypeLabel": "name"},
    ),
    Collection(
        key="dispatchOrders",
        table="dispatch_orders",
        slug="dispatch-orders",
        id_prefix="dsp",
        fields=(
            "date",
            "region",
            "customer",
            "city",
            "trailer_number",
            "bol_number",
            "driver_name",
            "dock_hours",
            "status",
            "source_file_name",
            "notes",
        ),
    ),
    Collection(
        key="pickupOrders",
        table="pickup_orders",
        slug="pickup-orders",
        id_prefix="pku",
        fields=(
            "region",
            "company",
            "dk_trl",
            "location",
            "date_called_out",
            "date_picked_up",
            "driver",
            "shift_code",
            "notes",
        ),
    ),
    Collection(
        key="fuelReadings",
        table="fuel_readings",
        slug="fuel-readings",
        id_prefix="fr",
        fields=(
            "date",
            "driver_id",
            "driver_name",
            "before_reading",
            "after_reading",
            "gallons_used",
            "photo_url",
            "notes",
        ),
    ),
    Collection(
        key="fuelRefills",
        table="fuel_refills",
        slug="fuel-refills",
        id_prefix="ff",
        fields=(
            "date",
            "gallons_added",
            "cost",
            "invoice_number",
            "driver_name",
            "photo_url",
            "notes",
        ),
    ),
    Collection(
        key="fuelTank",
        table="fuel_tank",
        slug="fuel-tank",
        id_prefix="ft",
        fields=("capacity_gallons", "current_gallons", "last_updated", "notes"),
    ),
    Collection(
        key="customers_il",
        table="customers_il",
        slug="customers-il",
        id_prefix="cil",
        fields=("customer", "address", "contact", "receiving", "drop", "distance", "notes"),
        bulk=True,
    ),
    Collection(
        key="customers_pa",
        table="customers_pa",
        slug="customers-pa",
        id_prefix="cpa",
        fields=(
            "customer",
            "address",
            "contact",
            "phone",
            "email",
            "receiving",
            "live",
            "eta",
            "notes",
        ),
        bulk=True,
    ),
    Collection(
        key="inventoryEntries",
        table="inventory_entries",
        slug="inventory-entries",
        id_prefix="inv",
        fields=(
            "date",
            "customer_name",
            "counted_by",
            "date_count_received",
            "ash_pallet_ref",
            "trailer_number",
            "customer_ref",
            "notes",
        )
        + _PALLET_FIELDS,
    ),
    Collection(
        key="customerPrices",
        table="customer_prices",
        slug="customer-prices",
        id_prefix="cpr",
        fields=("customer_name", "flat_rate_per_load", "notes") + _PRICE_FIELDS,
    ),
)

COLLECTIONS: Dict[str, Collection] = {entry.key: entry for entry in _ENTRIES}
_BY_SLUG: Dict[str, Collection] = {entry.slug: entry for entry in _ENTRIES}


def get_collection(key: str) -> Collection:
    try:
        return COLLECTIONS[key]
    except KeyError:
        raise UnknownCollectionError(key) from None


def get_collection_by_slug(slug: str) -> Collection:
    try:
        return _BY_SLUG[slug]
    except KeyError:
        raise UnknownCollectionError(slug) from None
