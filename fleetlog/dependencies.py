"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from fleetlog.config import Settings, get_settings
from fleetlog.db import EntityStore, InMemoryEntityStore, JsonFileEntityStore, SqlEntityStore
from fleetlog.entities import EntityService
from fleetlog.errors import ConfigurationError
from fleetlog.supabase_db import SupabaseEntityStore

logger = logging.getLogger(__name__)

_entity_service: EntityService | None = None


def build_entity_store(settings: Settings) -> EntityStore:
    """Create the store selected by ``FLEETLOG_STORAGE_BACKEND``."""
    backend = settings.storage_backend
    if backend == "memory":
        return InMemoryEntityStore()
    if backend == "json":
        return JsonFileEntityStore(settings.data_file)
    if backend == "sql":
        if not settings.database_url:
            raise ConfigurationError("DATABASE_URL is required for the sql backend")
        return SqlEntityStore(settings.database_url)
    if backend == "supabase":
        return SupabaseEntityStore(
            settings.supabase_url, settings.supabase_service_role_key
        )
    raise ConfigurationError(f"Unknown storage backend: {backend}")


def get_entity_service() -> EntityService:
    """
    Return a singleton service so the store (and its lock) is shared across requests.
    """
    global _entity_service
    if _entity_service:
        return _entity_service

    settings = get_settings()
    store = build_entity_store(settings)
    logger.info("Using %s storage backend", settings.storage_backend)
    _entity_service = EntityService(store)
    return _entity_service
