"""Message handlers mirroring the REST operations over a message bus.

The dispatcher is transport agnostic: a consumer loop hands it a topic, the
decoded payload and optional delivery context (partition, offset) and sends
back whatever envelope it returns.

Payloads:
    create              {"data": {...}}  (or the fields themselves)
    update              {"id", "data": {...}}
    delete / restore / hard_delete   {"id"}
    find_all            list query parameters
    find_one            {"id", "include_subcategories"?}
    find_by_slug        {"slug", "include_subcategories"?}
    find_by_gender      {"gender"}
    find_by_category    {"category_id"}
    update_status       {"id", "status"}
    update_sort_order   {"updates": [{"id", "sort_order"}, ...]}
    bulk_create         {"items": [...]}
    validate            {"name", "slug"?, "exclude_id"?}

Replies:
    {"success": true, "data": ..., "message": "Category created successfully"}
    {"success": false, "error": "...", "message": "Failed to create category"}
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from category_service.errors import ServiceError
from category_service.families import FAMILIES
from category_service.messaging import topics
from category_service.models import (
    BulkCreateRequest,
    CreateEntityRequest,
    UpdateEntityRequest,
    UpdateSortOrderRequest,
    UpdateStatusRequest,
    ValidateRequest,
)
from category_service.services import TaxonomyService
from category_service.services.taxonomy_service import _as_bool

logger = logging.getLogger(__name__)

Handler = Callable[[TaxonomyService, Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class Operation:
    """
    One message operation.

    ``success`` and ``failure`` are format strings receiving ``label``,
    ``plural`` (as shown to users) and ``item``/``items`` (lower case).
    """

    handler: Handler
    success: str
    failure: str


def _body(payload: Dict[str, Any]) -> Dict[str, Any]:
    data = payload.get("data")
    return data if isinstance(data, dict) else payload


def _required(payload: Dict[str, Any], field: str) -> Any:
    value = payload.get(field)
    if value in (None, ""):
        raise ValueError(f"{field} is required")
    return value


async def _create(service: TaxonomyService, payload: Dict[str, Any]):
    request = CreateEntityRequest.model_validate(_body(payload))
    return await service.create(request.model_dump(mode="json"))


async def _update(service: TaxonomyService, payload: Dict[str, Any]):
    entity_id = _required(payload, "id")
    request = UpdateEntityRequest.model_validate(payload.get("data") or {})
    return await service.update(entity_id, request.model_dump(mode="json", exclude_unset=True))


async def _delete(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.remove(_required(payload, "id"))


async def _restore(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.restore(_required(payload, "id"))


async def _hard_delete(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.hard_delete(_required(payload, "id"))


async def _find_all(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.find_all(payload)


async def _find_one(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.find_one(
        _required(payload, "id"), bool(_as_bool(payload.get("include_subcategories")))
    )


async def _find_by_slug(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.find_by_slug(
        _required(payload, "slug"), bool(_as_bool(payload.get("include_subcategories")))
    )


async def _find_by_gender(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.find_by_gender(_required(payload, "gender"))


async def _find_with_subcategories(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.find_with_subcategories()


async def _find_by_category(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.find_by_parent(payload.get("category_id") or _required(payload, "parent_id"))


async def _update_status(service: TaxonomyService, payload: Dict[str, Any]):
    request = UpdateStatusRequest.model_validate(payload)
    return await service.update_status(_required(payload, "id"), request.status.value)


async def _update_sort_order(service: TaxonomyService, payload: Dict[str, Any]):
    request = UpdateSortOrderRequest.model_validate(payload)
    return await service.update_sort_order([item.model_dump() for item in request.updates])


async def _bulk_create(service: TaxonomyService, payload: Dict[str, Any]):
    request = BulkCreateRequest.model_validate(payload)
    return await service.bulk_create([item.model_dump(mode="json") for item in request.items])


async def _get_stats(service: TaxonomyService, payload: Dict[str, Any]):
    return await service.get_stats()


async def _validate(service: TaxonomyService, payload: Dict[str, Any]):
    request = ValidateRequest.model_validate(payload)
    return await service.validate(request.name, request.slug, request.exclude_id)


OPERATIONS: Dict[str, Operation] = {
    topics.CREATE: Operation(_create, "{label} created successfully", "Failed to create {item}"),
    topics.UPDATE: Operation(_update, "{label} updated successfully", "Failed to update {item}"),
    topics.DELETE: Operation(_delete, "{label} deleted successfully", "Failed to delete {item}"),
    topics.RESTORE: Operation(_restore, "{label} restored successfully", "Failed to restore {item}"),
    topics.HARD_DELETE: Operation(
        _hard_delete, "{label} permanently deleted", "Failed to permanently delete {item}"
    ),
    topics.FIND_ALL: Operation(
        _find_all, "{plural} retrieved successfully", "Failed to retrieve {items}"
    ),
    topics.FIND_ONE: Operation(_find_one, "{label} retrieved successfully", "Failed to retrieve {item}"),
    topics.FIND_BY_SLUG: Operation(
        _find_by_slug, "{label} retrieved successfully", "Failed to retrieve {item}"
    ),
    topics.FIND_BY_GENDER: Operation(
        _find_by_gender, "{plural} retrieved successfully", "Failed to retrieve {items} by gender"
    ),
    topics.FIND_WITH_SUBCATEGORIES: Operation(
        _find_with_subcategories,
        "{plural} with subcategories retrieved successfully",
        "Failed to retrieve {items} with subcategories",
    ),
    topics.FIND_BY_CATEGORY: Operation(
        _find_by_category, "{plural} retrieved successfully", "Failed to retrieve {items} by category"
    ),
    topics.UPDATE_STATUS: Operation(
        _update_status, "{label} status updated successfully", "Failed to update {item} status"
    ),
    topics.UPDATE_SORT_ORDER: Operation(
        _update_sort_order, "{label} sort order updated successfully", "Failed to update sort order"
    ),
    topics.BULK_CREATE: Operation(
        _bulk_create, "{plural} created successfully", "Failed to bulk create {items}"
    ),
    topics.GET_STATS: Operation(
        _get_stats, "{label} statistics retrieved successfully", "Failed to retrieve {item} statistics"
    ),
    topics.VALIDATE: Operation(_validate, "Validation completed", "Failed to validate {item}"),
}


class MessageDispatcher:
    """
    Route ``<family>.<operation>`` topics to the family services.

    Args:
        services: Mapping of family name to TaxonomyService (see build_services)

    Example:
        >>> dispatcher = MessageDispatcher(build_services(store))
        >>> await dispatcher.dispatch("category.find_one", {"id": category_id})
        {"success": True, "data": {...}, "message": "Category retrieved successfully"}
    """

    def __init__(self, services: Mapping[str, TaxonomyService]):
        self.routes: Dict[str, tuple] = {}
        for name, service in services.items():
            family = FAMILIES[name]
            for operation in topics.operations_for(family):
                self.routes[topics.topic(family, operation)] = (service, OPERATIONS[operation])

    def registered_topics(self) -> List[str]:
        return sorted(self.routes)

    async def dispatch(
        self,
        topic: str,
        payload: Optional[Mapping[str, Any]] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Handle one message and build its reply. Never raises.

        Args:
            topic: e.g. "category.create"
            payload: Decoded message body
            context: Delivery metadata (partition, offset), used for logging
        """
        route = self.routes.get(topic)
        if route is None:
            logger.warning(f"No handler for topic {topic}")
            return {"success": False, "error": f"Unknown topic: {topic}", "message": "Unknown topic"}

        service, operation = route
        family = service.family
        names = {
            "label": family.label,
            "plural": family.label_plural,
            "item": family.label.lower(),
            "items": family.label_plural.lower(),
        }
        context = context or {}
        logger.info(
            f"Processing {topic} - Partition: {context.get('partition')}, Offset: {context.get('offset')}"
        )

        try:
            data = await operation.handler(service, dict(payload or {}))
        except (ServiceError, ValidationError, ValueError) as e:
            logger.warning(f"{topic} rejected: {e}")
            return {"success": False, "error": str(e), "message": operation.failure.format(**names)}
        except Exception as e:
            logger.error(f"Error handling {topic}: {e}", exc_info=True)
            return {"success": False, "error": str(e), "message": operation.failure.format(**names)}

        return {
            "success": True,
            "data": jsonable_encoder(data),
            "message": operation.success.format(**names),
        }
