"""Health endpoint: database pool, cache store and Redis status."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from category_service.config import APP_NAME, APP_VERSION
from category_service.db.pool import check_pool_health
from category_service.redis_client import check_redis_health

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def check_store_health(store) -> Dict[str, Any]:
    if store is None:
        return {"status": "unavailable", "error": "Store not initialized"}
    try:
        await store.ping()
    except Exception as e:
        logger.error(f"Cache store health check failed: {e}", exc_info=True)
        return {"status": "degraded", "error": str(e)}
    return {"status": "healthy", **store.stats()}


def overall_status(components: Dict[str, Dict[str, Any]], required=("database", "cache")) -> str:
    """
    healthy when every required component is healthy, unavailable when the
    database is not, degraded otherwise.
    """
    if components["database"]["status"] != "healthy":
        return "unavailable"
    if all(components[name]["status"] == "healthy" for name in required):
        return "healthy"
    return "degraded"


@router.get("/health")
async def health(request: Request):
    store = getattr(request.app.state, "store", None)
    components = {
        "database": await check_pool_health(),
        "cache": await check_store_health(store),
    }
    required = ["database", "cache"]
    if getattr(request.app.state, "cache_backend", "memory") == "redis":
        components["redis"] = await check_redis_health()
        required.append("redis")

    status = overall_status(components, tuple(required))
    return JSONResponse(
        status_code=200 if status != "unavailable" else 503,
        content={
            "status": status,
            "service": APP_NAME,
            "version": APP_VERSION,
            "components": components,
        },
    )
