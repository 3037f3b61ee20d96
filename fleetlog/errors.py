"""
Exception types shared by the storage, service and HTTP layers.
"""

from __future__ import annotations


class FleetLogError(Exception):
    """Base class for backend errors."""


class ConfigurationError(FleetLogError):
    """Raised for missing settings or invalid registry lookups."""


class UnknownCollectionError(ConfigurationError):
    def __init__(self, key: str):
        super().__init__(f"Unknown collection: {key}")
        self.key = key


class NotFoundError(FleetLogError):
    def __init__(self, collection: str, record_id: str):
        super().__init__("Not found")
        self.collection = collection
        self.record_id = record_id


class StoreError(FleetLogError):
    """Wraps a failure reported by the underlying storage backend."""
