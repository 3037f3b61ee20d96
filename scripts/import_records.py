"""
One-time seed import: upsert a JSON file of rows into a collection.

The file may hold either a JSON array of objects or ``{"rows": [...]}``
(the same shapes the ``/bulk`` endpoint accepts).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fleetlog.dependencies import get_entity_service
from fleetlog.errors import ConfigurationError, StoreError
from fleetlog.registry import COLLECTIONS

logger = logging.getLogger(__name__)


def load_rows(path: Path) -> list[dict]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        rows = payload.get("rows")
    else:
        rows = payload
    if not isinstance(rows, list):
        raise ValueError("Expected file to hold an array or { rows: [...] }")
    return [row for row in rows if isinstance(row, dict)]


def main() -> int:
    parser = argparse.ArgumentParser(description="Bulk import records into a collection")
    parser.add_argument(
        "-c",
        "--collection",
        required=True,
        choices=sorted(COLLECTIONS),
        help="Collection key to import into",
    )
    parser.add_argument("path", type=Path, help="JSON file with the rows")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse the file and report the row count without writing",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    try:
        rows = load_rows(args.path)
    except (OSError, ValueError) as exc:
        logger.error("Could not read %s: %s", args.path, exc)
        return 1

    if args.dry_run:
        logger.info("%d rows found in %s", len(rows), args.path)
        return 0

    try:
        written = get_entity_service().bulk_upsert(args.collection, rows)
    except (ConfigurationError, StoreError) as exc:
        logger.error("Import failed: %s", exc)
        return 1

    logger.info("Imported %d of %d rows into %s", len(written), len(rows), args.collection)
    return 0


if __name__ == "__main__":
    sys.exit(main())
