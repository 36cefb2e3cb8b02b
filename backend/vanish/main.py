from __future__ import annotations

import logging
import time
from typing import Callable

import redis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vanish.api.routes.blobs import attachments_router, vault_router
from vanish.api.routes.messages import router as messages_router
from vanish.api.routes.rooms import router as rooms_router
from vanish.core.config import Settings, settings as default_settings
from vanish.core.errors import VanishError
from vanish.core.logger import setup_logging
from vanish.middleware.headers import SecurityHeadersMiddleware
from vanish.services.gate import AccessGate
from vanish.storage.blob_store import BlobStore
from vanish.storage.redis_client import create_redis_client, ping
from vanish.storage.session_store import SessionStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    redis_client: redis.Redis | None = None,
    clock: Callable[[], float] | None = None,
) -> FastAPI:
    settings = settings or default_settings
    clock = clock or time.time

    app = FastAPI(
        title="Vanish",
        version="0.1.0",
        description="Ephemeral zero-knowledge rooms, messages and attachments",
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Attachment-Mime", "X-Attachment-Size"],
    )

    app.include_router(rooms_router)
    app.include_router(messages_router)
    app.include_router(attachments_router)
    app.include_router(vault_router)

    @app.exception_handler(VanishError)
    async def _vanish_error(request: Request, exc: VanishError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        details = [err.get("msg", "invalid") for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Validation failed", "details": details},
        )

    @app.on_event("startup")
    def _startup() -> None:
        setup_logging(settings.log_level)
        owns_client = redis_client is None
        client = redis_client or create_redis_client(settings)
        if not ping(client):
            raise RuntimeError(f"Redis unreachable at {settings.redis_url}")
        logger.info("Connected to Redis")

        blobs = BlobStore(
            max_size_bytes=settings.attachment_max_bytes,
            default_ttl_ms=settings.attachment_default_ttl_ms,
            sweep_interval=settings.attachment_sweep_interval,
            clock=clock,
        )
        sessions = SessionStore(client, clock=clock)

        app.state.redis = client
        app.state.owns_redis = owns_client
        app.state.blobs = blobs
        app.state.gate = AccessGate(settings, sessions, blobs, clock=clock)

    @app.on_event("shutdown")
    def _shutdown() -> None:
        blobs = getattr(app.state, "blobs", None)
        if blobs is not None:
            blobs.close()
        if getattr(app.state, "owns_redis", False):
            app.state.redis.close()
        logger.info("Shut down")

    @app.get("/health")
    def health():
        client = getattr(app.state, "redis", None)
        return {"status": "ok", "redis": bool(client is not None and ping(client))}

    return app


app = create_app()
