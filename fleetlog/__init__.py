"""
FleetLog backend package.

This package provides a FastAPI application over a generic entity CRUD layer
with pluggable storage (JSON document, SQLAlchemy, Supabase or in-memory)
for the FleetLog driver/dispatch/fuel tracking frontend.
"""
