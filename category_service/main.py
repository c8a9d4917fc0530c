"""FastAPI application for the Category Service.

Usage:
    uvicorn category_service.main:app --port 5000

    # or through the CLI
    python cli.py serve

On startup the app builds the single process-wide cache store
(CACHE_BACKEND=memory|redis), opens the asyncpg pool and wires one
TaxonomyService per entity family onto ``app.state``. Tests pass prebuilt
services and store to ``create_app`` instead.
"""

import logging
from http import HTTPStatus
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from category_service.api.health import router as health_router
from category_service.api.responses import error_response
from category_service.api.taxonomy import build_router
from category_service.cache.store import MemoryStore, RedisStore
from category_service.config import (
    APP_NAME,
    APP_VERSION,
    CACHE_BACKEND,
    CACHE_MAX_ENTRIES,
    CACHE_NAMESPACE,
    configure_logging,
    get_cors_origins,
)
from category_service.db.pool import close_pool, init_pool
from category_service.errors import ServiceError
from category_service.families import FAMILIES
from category_service.middleware import RequestContextMiddleware
from category_service.redis_client import close_redis_pool, init_redis_pool
from category_service.services import TaxonomyService, build_services

logger = logging.getLogger(__name__)


# ============================================================================
# STORE
# ============================================================================

async def build_store(backend: str = CACHE_BACKEND):
    """
    Build the shared expiring store.

    A Redis backend that cannot be reached falls back to the in-process
    store, since the cache is never required for correctness.
    """
    if backend == "redis":
        try:
            client = await init_redis_pool()
            logger.info("Using Redis cache store")
            return RedisStore(client, namespace=CACHE_NAMESPACE)
        except Exception as e:
            logger.warning(f"Redis unavailable ({e}), falling back to in-memory cache store")

    logger.info(f"Using in-memory cache store (max_entries={CACHE_MAX_ENTRIES})")
    return MemoryStore(max_entries=CACHE_MAX_ENTRIES)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

def _reason(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(request, exc.status_code, exc.message, exc.error)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(
            request,
            exc.status_code,
            exc.detail,
            _reason(exc.status_code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        messages = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        ]
        return error_response(request, 422, messages, "Unprocessable Entity")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return error_response(request, 500, "Internal server error", "Internal Server Error")


# ============================================================================
# APP FACTORY
# ============================================================================

def create_app(
    services: Optional[Dict[str, TaxonomyService]] = None,
    store=None,
    cache_backend: str = CACHE_BACKEND,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Prebuilt services; when given, startup opens no pools
        store: The store those services share
        cache_backend: "memory" or "redis"

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(title=APP_NAME, version=APP_VERSION)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time", "X-Cache-Key"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.state.services = services
    app.state.store = store
    app.state.cache_backend = cache_backend
    app.state.owns_resources = services is None

    register_exception_handlers(app)

    app.include_router(health_router)
    for family in FAMILIES.values():
        app.include_router(build_router(family))

    @app.on_event("startup")
    async def startup_event():
        if not app.state.owns_resources:
            return
        configure_logging()
        app.state.store = await build_store(cache_backend)
        await init_pool()
        app.state.services = build_services(app.state.store)
        logger.info(f"{APP_NAME} {APP_VERSION} started with families: {', '.join(FAMILIES)}")

    @app.on_event("shutdown")
    async def shutdown_event():
        if not app.state.owns_resources:
            return
        await close_pool()
        await close_redis_pool()
        logger.info(f"{APP_NAME} stopped")

    return app


app = create_app()
