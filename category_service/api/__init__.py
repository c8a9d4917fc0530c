"""HTTP surface: per-family routers, health endpoint and response envelopes."""

from category_service.api.health import router as health_router
from category_service.api.taxonomy import build_router

__all__ = ["build_router", "health_router"]
