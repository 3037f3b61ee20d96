"""
Run the FleetLog API with uvicorn on HOST:PORT.
"""

from __future__ import annotations

import logging
import sys

import uvicorn

from fleetlog.config import get_settings
from fleetlog.dependencies import get_entity_service
from fleetlog.errors import ConfigurationError, StoreError

logger = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )
    settings = get_settings()
    try:
        get_entity_service().store.ping()
    except (ConfigurationError, StoreError) as exc:
        logger.error("Startup failed: %s", exc)
        return 1

    from fleetlog.app import app

    logger.info("Server listening on http://%s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
