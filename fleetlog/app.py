"""
FastAPI application entry point for the FleetLog backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from fleetlog.config import get_settings
from fleetlog.dependencies import get_entity_service
from fleetlog.errors import ConfigurationError, NotFoundError, StoreError
from fleetlog.routes import router

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


class BodySizeLimitMiddleware:
    """
    Answers 413 once a request body passes ``max_bytes``. Declared lengths are
    rejected up front; streamed bodies are buffered and counted as they arrive.
    """

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None and length.isdigit():
            if int(length) > self.max_bytes:
                await _error(413, "Payload too large")(scope, receive, send)
            else:
                await self.app(scope, receive, send)
            return

        chunks = []
        received = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            received += len(message.get("body", b""))
            if received > self.max_bytes:
                await _error(413, "Payload too large")(scope, receive, send)
                return
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if replayed:
                return await receive()
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}

        await self.app(scope, replay, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Store construction and connectivity are checked before serving requests.
    provider = app.dependency_overrides.get(get_entity_service, get_entity_service)
    provider().store.ping()
    yield


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found(_request: Request, _exc: NotFoundError):
        return _error(404, "Not found")

    @app.exception_handler(RequestValidationError)
    async def bad_request(_request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if any(err.get("type") == "json_invalid" for err in errors):
            return _error(400, "Invalid JSON body")
        message = "; ".join(str(err.get("msg", "")) for err in errors) or "Bad request"
        return _error(400, message)

    @app.exception_handler(StoreError)
    async def store_failed(request: Request, exc: StoreError):
        logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
        return _error(500, str(exc) or "Server error")

    @app.exception_handler(ConfigurationError)
    async def misconfigured(_request: Request, exc: ConfigurationError):
        return _error(500, str(exc))


def _install_spa(app: FastAPI, dist_dir: Path, api_prefix: str) -> None:
    """Serve the built frontend; unknown non-API paths fall back to index.html."""
    api_root = api_prefix.strip("/")

    @app.get("/{full_path:path}", include_in_schema=False)
    def spa(full_path: str):
        if api_root and (full_path == api_root or full_path.startswith(f"{api_root}/")):
            return _error(404, "Not found")
        root = dist_dir.resolve()
        candidate = (root / full_path).resolve()
        if full_path and candidate.is_file() and root in candidate.parents:
            return FileResponse(candidate)
        index = root / "index.html"
        if index.is_file():
            return FileResponse(index)
        return _error(404, "Not found")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="FleetLog Backend (FastAPI)", version="0.1.0", lifespan=lifespan)

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]
    )

    _install_error_handlers(app)

    @app.get("/health")
    def health():
        return {"ok": True}

    app.include_router(router, prefix=settings.api_prefix)
    _install_spa(app, Path(settings.dist_dir), settings.api_prefix)
    return app


app = create_app()
