"""
Configuration and settings for the FleetLog backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

StorageBackend = Literal["json", "sql", "supabase", "memory"]


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Storage selection
    storage_backend: StorageBackend = Field(
        default="json", validation_alias="FLEETLOG_STORAGE_BACKEND"
    )
    data_file: str = Field(
        default="data/db.json", validation_alias="FLEETLOG_DATA_FILE"
    )

    # SQLAlchemy URL (Postgres expected, SQLite works for local runs)
    database_url: Optional[str] = Field(default=None)

    # Supabase (table-backed variant)
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5050)
    dist_dir: str = Field(default="dist", validation_alias="FLEETLOG_DIST_DIR")
    max_body_bytes: int = Field(
        default=100 * 1024, validation_alias="FLEETLOG_MAX_BODY_BYTES"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
