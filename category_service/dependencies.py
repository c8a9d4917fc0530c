"""FastAPI dependency injection utilities.

Services are built once at startup (see main.py) and kept on ``app.state``;
routes reach them through these dependencies.
"""

import logging
from typing import Callable, Dict

from fastapi import HTTPException, Request, status

from category_service.services import TaxonomyService

logger = logging.getLogger(__name__)


def get_services(request: Request) -> Dict[str, TaxonomyService]:
    """
    FastAPI dependency for the per-family services.

    Raises:
        HTTPException: 503 Service Unavailable if startup did not build them
    """
    services = getattr(request.app.state, "services", None)
    if not services:
        logger.error("Services requested before startup completed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services not initialized",
        )
    return services


def get_service(family_name: str) -> Callable[[Request], TaxonomyService]:
    """
    Build a dependency returning the service of one family.

    Example:
        @router.get("/")
        async def list_items(service = Depends(get_service("category"))):
            ...
    """

    def dependency(request: Request) -> TaxonomyService:
        services = get_services(request)
        try:
            return services[family_name]
        except KeyError:
            logger.error(f"No service registered for family {family_name!r}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Service '{family_name}' not available",
            )

    return dependency
