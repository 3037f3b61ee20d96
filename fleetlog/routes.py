"""
HTTP routes for the FleetLog API: one CRUD router per registered collection.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from fleetlog.dependencies import get_entity_service
from fleetlog.entities import EntityService
from fleetlog.registry import COLLECTIONS, Collection
from fleetlog.schemas import BulkRowsPayload, BulkUpsertResponse, ErrorResponse, OkResponse

logger = logging.getLogger(__name__)

BULK_BODY_ERROR = "Expected body to be an array or { rows: [...] }"

_NOT_FOUND = {404: {"model": ErrorResponse}}


def _bulk_rows(body: Any) -> Optional[list[dict]]:
    if isinstance(body, list):
        rows = body
    else:
        try:
            rows = BulkRowsPayload.model_validate(body).rows
        except ValidationError:
            return None
    if not all(isinstance(row, dict) for row in rows):
        return None
    return rows


def make_entity_router(collection: Collection) -> APIRouter:
    """
    Generic CRUD router for one collection:
    - GET /        -> list (query filters + ?sort=name or ?sort=-created_date)
    - POST /       -> create
    - PUT /{id}    -> update (partial)
    - DELETE /{id} -> delete
    - POST /bulk   -> upsert many (bulk-enabled collections only)
    """
    key = collection.key
    router = APIRouter(prefix=f"/{collection.slug}", tags=[collection.slug])

    @router.get("", name=f"list_{key}")
    def list_records(
        request: Request, service: EntityService = Depends(get_entity_service)
    ) -> list[dict]:
        return service.list(key, dict(request.query_params))

    @router.post("", name=f"create_{key}")
    def create_record(
        payload: Optional[dict[str, Any]] = Body(default=None),
        service: EntityService = Depends(get_entity_service),
    ) -> dict:
        return service.create(key, payload)

    @router.put("/{record_id}", name=f"update_{key}", responses=_NOT_FOUND)
    def update_record(
        record_id: str,
        payload: Optional[dict[str, Any]] = Body(default=None),
        service: EntityService = Depends(get_entity_service),
    ) -> dict:
        return service.update(key, record_id, payload)

    @router.delete(
        "/{record_id}",
        name=f"delete_{key}",
        response_model=OkResponse,
        responses=_NOT_FOUND,
    )
    def delete_record(
        record_id: str, service: EntityService = Depends(get_entity_service)
    ):
        service.delete(key, record_id)
        return OkResponse()

    if collection.bulk:

        @router.post(
            "/bulk",
            name=f"bulk_upsert_{key}",
            response_model=BulkUpsertResponse,
            responses={400: {"model": ErrorResponse}},
        )
        def bulk_upsert(
            body: Any = Body(default=None),
            service: EntityService = Depends(get_entity_service),
        ):
            rows = _bulk_rows(body)
            if rows is None:
                return JSONResponse(status_code=400, content={"error": BULK_BODY_ERROR})
            written = service.bulk_upsert(key, rows)
            return BulkUpsertResponse(count=len(written), rows=written)

    return router


router = APIRouter()
for _collection in COLLECTIONS.values():
    router.include_router(make_entity_router(_collection))
