"""REST endpoints for one entity family.

``build_router(family)`` is called once per family; every route delegates to
that family's TaxonomyService and wraps the result in the success envelope.
Caching happens in the service only; GET responses just advertise the TTL
class and the semantic cache key through response headers.
"""

import logging

from fastapi import APIRouter, Depends, Request

from category_service.api.responses import cache_headers, success_response
from category_service.cache.keys import CacheTTL
from category_service.config import API_PREFIX
from category_service.dependencies import get_service
from category_service.families import EntityFamily
from category_service.models import (
    BulkCreateRequest,
    CreateEntityRequest,
    UpdateEntityRequest,
    UpdateSortOrderRequest,
    UpdateStatusRequest,
    ValidateRequest,
)
from category_service.services import TaxonomyService
from category_service.services.taxonomy_service import ensure_uuid

logger = logging.getLogger(__name__)


def build_router(family: EntityFamily) -> APIRouter:
    """
    Create the router for one family, mounted at ``{API_PREFIX}/{namespace}``.

    Static paths are registered before ``/{entity_id}`` so that e.g.
    ``/stats`` never matches the id route.
    """
    router = APIRouter(prefix=f"{API_PREFIX}/{family.namespace}", tags=[family.namespace])
    service_dependency = get_service(family.name)
    label = family.label
    plural = family.label_plural

    @router.get("")
    async def list_entities(request: Request, service: TaxonomyService = Depends(service_dependency)):
        """Paginated list; accepts page, limit, sort_by, sort_order and filters."""
        query = dict(request.query_params)
        result = await service.find_all(query)
        key = service.list_cache_key(service.normalize_query(query))
        return success_response(
            request,
            result["items"],
            f"{plural} retrieved successfully",
            pagination=result["pagination"],
            headers=cache_headers(CacheTTL.LIST, key),
        )

    @router.post("", status_code=201)
    async def create_entity(
        body: CreateEntityRequest,
        request: Request,
        service: TaxonomyService = Depends(service_dependency),
    ):
        entity = await service.create(body.model_dump(mode="json"))
        return success_response(request, entity, f"{label} created successfully", status_code=201)

    @router.get("/stats")
    async def get_stats(request: Request, service: TaxonomyService = Depends(service_dependency)):
        stats = await service.get_stats()
        return success_response(
            request,
            stats,
            f"{label} statistics retrieved successfully",
            headers=cache_headers(CacheTTL.STATS, service.keys.stats_key()),
        )

    @router.get("/with-subcategories")
    async def find_with_subcategories(
        request: Request, service: TaxonomyService = Depends(service_dependency)
    ):
        items = await service.find_with_subcategories()
        return success_response(
            request,
            items,
            f"{plural} with subcategories retrieved successfully",
            headers=cache_headers(CacheTTL.LIST, service.keys.with_children_key()),
        )

    @router.get("/gender/{gender}")
    async def find_by_gender(
        gender: str, request: Request, service: TaxonomyService = Depends(service_dependency)
    ):
        items = await service.find_by_gender(gender)
        return success_response(
            request,
            items,
            f"{plural} for gender '{gender}' retrieved successfully",
            headers=cache_headers(CacheTTL.LIST, service.keys.gender_key(gender)),
        )

    @router.get("/slug/{slug}")
    async def find_by_slug(
        slug: str,
        request: Request,
        include_subcategories: bool = False,
        service: TaxonomyService = Depends(service_dependency),
    ):
        entity = await service.find_by_slug(slug, include_subcategories)
        return success_response(
            request,
            entity,
            f"{label} retrieved successfully",
            headers=cache_headers(
                CacheTTL.DETAIL, service.slug_cache_key(slug, include_subcategories)
            ),
        )

    @router.post("/validate")
    async def validate(
        body: ValidateRequest, request: Request, service: TaxonomyService = Depends(service_dependency)
    ):
        result = await service.validate(body.name, body.slug, body.exclude_id)
        return success_response(request, result, "Validation completed")

    @router.post("/bulk", status_code=201)
    async def bulk_create(
        body: BulkCreateRequest, request: Request, service: TaxonomyService = Depends(service_dependency)
    ):
        created = await service.bulk_create([item.model_dump(mode="json") for item in body.items])
        return success_response(
            request, created, f"{len(created)} {plural.lower()} created successfully", status_code=201
        )

    @router.patch("/sort-order")
    async def update_sort_order(
        body: UpdateSortOrderRequest,
        request: Request,
        service: TaxonomyService = Depends(service_dependency),
    ):
        result = await service.update_sort_order([item.model_dump() for item in body.updates])
        return success_response(request, result, result["message"])

    if family.has_parent:

        @router.get("/parent/{parent_id}")
        async def find_by_parent(
            parent_id: str, request: Request, service: TaxonomyService = Depends(service_dependency)
        ):
            items = await service.find_by_parent(parent_id)
            return success_response(
                request,
                items,
                f"{plural} retrieved successfully",
                headers=cache_headers(CacheTTL.LIST, service.keys.parent_key(ensure_uuid(parent_id))),
            )

    @router.get("/{entity_id}")
    async def find_one(
        entity_id: str,
        request: Request,
        include_subcategories: bool = False,
        service: TaxonomyService = Depends(service_dependency),
    ):
        entity = await service.find_one(entity_id, include_subcategories)
        include_children = include_subcategories and service.children is not None
        return success_response(
            request,
            entity,
            f"{label} retrieved successfully",
            headers=cache_headers(
                CacheTTL.DETAIL, service.keys.detail_key(ensure_uuid(entity_id), include_children)
            ),
        )

    @router.patch("/{entity_id}")
    async def update_entity(
        entity_id: str,
        body: UpdateEntityRequest,
        request: Request,
        service: TaxonomyService = Depends(service_dependency),
    ):
        entity = await service.update(entity_id, body.model_dump(mode="json", exclude_unset=True))
        return success_response(request, entity, f"{label} updated successfully")

    @router.patch("/{entity_id}/status")
    async def update_status(
        entity_id: str,
        body: UpdateStatusRequest,
        request: Request,
        service: TaxonomyService = Depends(service_dependency),
    ):
        entity = await service.update_status(entity_id, body.status.value)
        return success_response(request, entity, f"{label} status updated successfully")

    @router.delete("/{entity_id}")
    async def remove_entity(
        entity_id: str, request: Request, service: TaxonomyService = Depends(service_dependency)
    ):
        result = await service.remove(entity_id)
        return success_response(request, result, result["message"])

    @router.post("/{entity_id}/restore")
    async def restore_entity(
        entity_id: str, request: Request, service: TaxonomyService = Depends(service_dependency)
    ):
        entity = await service.restore(entity_id)
        return success_response(request, entity, f"{label} restored successfully")

    @router.delete("/{entity_id}/permanent")
    async def hard_delete_entity(
        entity_id: str, request: Request, service: TaxonomyService = Depends(service_dependency)
    ):
        result = await service.hard_delete(entity_id)
        return success_response(request, result, result["message"])

    return router
