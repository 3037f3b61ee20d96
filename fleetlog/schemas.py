"""
Pydantic schemas for the FleetLog API envelopes.

Records themselves are untyped JSON objects whose shape is governed by the
collection registry, so only the fixed-shape responses are modelled here.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class OkResponse(BaseModel):
    ok: Literal[True] = True


class ErrorResponse(BaseModel):
    error: str


class BulkRowsPayload(BaseModel):
    rows: list[dict]


class BulkUpsertResponse(BaseModel):
    ok: Literal[True] = True
    count: int
    rows: list[dict]
