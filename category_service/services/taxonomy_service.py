"""Taxonomy service: cached reads and invalidating writes for one family."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from category_service.cache.invalidation import CacheInvalidator
from category_service.cache.keys import VIEW_WITH_SUBCATEGORIES, CacheTTL
from category_service.cache.read_through import ReadThroughCache, cached
from category_service.errors import BadRequestError
from category_service.families import EntityFamily
from category_service.models import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    SORTABLE_FIELDS,
    EntityStatus,
    Gender,
    SortOrder,
)
from category_service.utils.slug import generate_unique_slug, slugify

logger = logging.getLogger(__name__)

LIST_FILTERS = ("status", "gender", "has_subcategories", "parent_id", "search", "include_deleted")


def ensure_uuid(value: Any, field: str = "id") -> str:
    """Return the canonical string form of a UUID or raise BadRequestError."""
    try:
        return str(UUID(str(value)))
    except (TypeError, ValueError):
        raise BadRequestError(f"Invalid {field}: {value!r}")


def _enum_value(enum_cls, value: Any, field: str) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        return enum_cls(getattr(value, "value", value)).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise BadRequestError(f"Invalid {field} '{value}', expected one of: {allowed}")


def _as_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    raise BadRequestError(f"Invalid boolean value: {value!r}")


class TaxonomyService:
    """
    Service class for one entity family.

    Every read goes through the read-through cache with its TTL class; every
    mutation writes through the repository first and then runs the
    invalidation fan-out for the family. Conflicts and missing records are
    raised by the repository before any cache work happens.

    Args:
        family: The EntityFamily served
        repository: Persistence accessor (see db.taxonomy_db.TaxonomyRepository)
        store: Shared expiring store
        children: Optional service of the child family, used when a detail
            read asks for its subcategories
    """

    def __init__(self, family: EntityFamily, repository, store, children: Optional["TaxonomyService"] = None):
        self.family = family
        self.repository = repository
        self.keys = family.keys
        self.cache = ReadThroughCache(store)
        self.invalidator = CacheInvalidator(store, self.keys)
        self.children = children

    # ------------------------------------------------------------------
    # Query normalisation
    # ------------------------------------------------------------------

    def normalize_query(self, query: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Validate list parameters and fill in defaults."""
        query = dict(query or {})

        try:
            page = int(query.get("page") or DEFAULT_PAGE)
            limit = int(query.get("limit") or DEFAULT_LIMIT)
        except (TypeError, ValueError):
            raise BadRequestError("page and limit must be integers")
        if page < 1:
            raise BadRequestError("page must be >= 1")
        if not 1 <= limit <= MAX_LIMIT:
            raise BadRequestError(f"limit must be between 1 and {MAX_LIMIT}")

        sort_by = query.get("sort_by") or "sort_order"
        if sort_by not in SORTABLE_FIELDS:
            raise BadRequestError(f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}")
        sort_order = _enum_value(SortOrder, query.get("sort_order"), "sort_order") or "asc"

        search = query.get("search")
        if search is not None:
            search = str(search).strip().lower() or None
            if search is not None and not 2 <= len(search) <= 100:
                raise BadRequestError("search must be between 2 and 100 characters")

        parent_id = query.get("parent_id")
        filters = {
            "status": _enum_value(EntityStatus, query.get("status"), "status"),
            "gender": _enum_value(Gender, query.get("gender"), "gender"),
            "has_subcategories": _as_bool(query.get("has_subcategories")),
            "parent_id": ensure_uuid(parent_id, "parent_id") if parent_id else None,
            "search": search,
            "include_deleted": _as_bool(query.get("include_deleted")) or None,
        }
        return {
            "page": page,
            "limit": limit,
            "sort_by": sort_by,
            "sort_order": sort_order,
            "filters": {name: value for name, value in filters.items() if value is not None},
        }

    def list_cache_key(self, normalized: Dict[str, Any]) -> str:
        filters = dict(normalized["filters"])
        filters["sort_by"] = normalized["sort_by"]
        filters["sort_order"] = normalized["sort_order"]
        return self.keys.list_key(normalized["page"], normalized["limit"], filters)

    # ------------------------------------------------------------------
    # Reads (cached)
    # ------------------------------------------------------------------

    async def find_all(self, query: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Paginated, filtered list.

        Returns:
            {"items": [...], "pagination": {...}}
        """
        normalized = self.normalize_query(query)
        return await self.cache.get_or_load(
            self.list_cache_key(normalized),
            lambda: self.repository.find_page(
                normalized["filters"],
                normalized["sort_by"],
                normalized["sort_order"],
                normalized["page"],
                normalized["limit"],
            ),
            CacheTTL.LIST,
        )

    async def find_one(self, entity_id: str, include_children: bool = False) -> Dict[str, Any]:
        entity_id = ensure_uuid(entity_id)
        include_children = bool(include_children) and self.children is not None

        async def load() -> Dict[str, Any]:
            entity = await self.repository.find_by_id(entity_id)
            if include_children:
                entity["subcategories"] = await self.children.repository.find_by_parent(entity_id)
            return entity

        return await self.cache.get_or_load(
            self.keys.detail_key(entity_id, include_children), load, CacheTTL.DETAIL
        )

    async def find_by_slug(self, slug: str, include_children: bool = False) -> Dict[str, Any]:
        if not slug or not slug.strip():
            raise BadRequestError("slug is required")
        slug = slug.strip().lower()
        include_children = bool(include_children) and self.children is not None

        async def load() -> Dict[str, Any]:
            entity = await self.repository.find_by_slug(slug)
            if include_children:
                entity["subcategories"] = await self.children.repository.find_by_parent(entity["id"])
            return entity

        return await self.cache.get_or_load(
            self.slug_cache_key(slug, include_children), load, CacheTTL.DETAIL
        )

    def slug_cache_key(self, slug: str, include_children: bool = False) -> str:
        key = self.keys.slug_key(slug.strip().lower())
        if include_children and self.children is not None:
            key = f"{key}{self.keys.separator}{VIEW_WITH_SUBCATEGORIES}"
        return key

    async def find_by_gender(self, gender: str) -> List[Dict[str, Any]]:
        gender = _enum_value(Gender, gender, "gender")
        if gender is None:
            raise BadRequestError("gender is required")
        return await self.cache.get_or_load(
            self.keys.gender_key(gender),
            lambda: self.repository.find_by_gender(gender),
            CacheTTL.LIST,
        )

    @cached(key_builder=lambda self: self.keys.with_children_key(), ttl=CacheTTL.LIST)
    async def find_with_subcategories(self) -> List[Dict[str, Any]]:
        return await self.repository.find_with_children()

    async def find_by_parent(self, parent_id: str) -> List[Dict[str, Any]]:
        if not self.family.has_parent:
            raise BadRequestError(f"{self.family.label_plural} have no parent")
        parent_id = ensure_uuid(parent_id, "parent_id")
        return await self.cache.get_or_load(
            self.keys.parent_key(parent_id),
            lambda: self.repository.find_by_parent(parent_id),
            CacheTTL.LIST,
        )

    @cached(key_builder=lambda self: self.keys.stats_key(), ttl=CacheTTL.STATS)
    async def get_stats(self) -> Dict[str, Any]:
        """
        Aggregate statistics for the family.

        Returns:
            total, active, inactive, deleted, with_subcategories,
            without_subcategories, by_status, by_gender, recently_created,
            recently_updated
        """
        counts = await self.repository.get_counts()
        by_status = await self.repository.count_by_group("status")
        by_gender = await self.repository.count_by_group("gender")

        total = counts.get("total", 0)
        with_children = counts.get("with_subcategories", 0)
        return {
            "total": total,
            "active": counts.get("active", 0),
            "inactive": counts.get("inactive", 0),
            "deleted": counts.get("deleted", 0),
            "with_subcategories": with_children,
            "without_subcategories": total - with_children,
            "by_status": {status.value: by_status.get(status.value, 0) for status in EntityStatus},
            "by_gender": {gender.value: by_gender.get(gender.value, 0) for gender in Gender},
            "recently_created": await self.repository.recently_created(5),
            "recently_updated": await self.repository.recently_updated(5),
        }

    async def validate(
        self,
        name: str,
        slug: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Check whether a name and slug are free.

        With exclude_id, records with that id do not count as conflicts, so
        an entity can be re-validated against its own current name.

        Returns:
            {"name_available", "slug_available", "suggested_slug", "messages"}
        """
        name = (name or "").strip()
        if not name:
            raise BadRequestError("name is required")
        slug = (slug or "").strip().lower() or slugify(name)
        if exclude_id is not None:
            exclude_id = ensure_uuid(exclude_id, "exclude_id")

        async def load() -> Dict[str, Any]:
            name_taken = await self.repository.exists(name=name, exclude_id=exclude_id)
            slug_taken = await self.repository.exists(slug=slug, exclude_id=exclude_id)
            suggested = None
            if slug_taken:
                suggested = await generate_unique_slug(
                    slug,
                    lambda candidate: self.repository.exists(slug=candidate, exclude_id=exclude_id),
                    base_taken=True,
                )
            return {
                "name_available": not name_taken,
                "slug_available": not slug_taken,
                "suggested_slug": suggested,
            }

        # the key ignores name casing, so messages quote this caller's name
        result = await self.cache.get_or_load(
            self.keys.validation_key(name, slug, exclude_id), load, CacheTTL.VALIDATION
        )
        return dict(result, messages=self._validation_messages(name, slug, result))

    def _validation_messages(self, name: str, slug: str, result: Dict[str, Any]) -> List[str]:
        label = self.family.label
        messages = []
        if not result["name_available"]:
            messages.append(f"{label} name '{name}' is already in use")
        if not result["slug_available"]:
            messages.append(f"{label} slug '{slug}' is already in use")
            messages.append(f"Suggested slug: '{result['suggested_slug']}'")
        if not messages:
            messages.append(f"{label} name and slug are available")
        return messages

    # ------------------------------------------------------------------
    # Mutations (invalidate after commit)
    # ------------------------------------------------------------------

    async def create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        data = self._check_parent_id(dict(data))
        entity = await self.repository.create(data)
        logger.info(f"{self.family.label} created: {entity['id']} ({entity['slug']})")
        await self.invalidator.invalidate(entity["id"])
        return entity

    async def update(self, entity_id: str, patch: Mapping[str, Any]) -> Dict[str, Any]:
        entity_id = ensure_uuid(entity_id)
        patch = self._check_parent_id(dict(patch))
        entity = await self.repository.update(entity_id, patch)
        await self.invalidator.invalidate(entity_id)
        return entity

    async def remove(self, entity_id: str) -> Dict[str, Any]:
        """Soft delete."""
        entity_id = ensure_uuid(entity_id)
        await self.repository.soft_delete(entity_id)
        await self.invalidator.invalidate(entity_id)
        return {"id": entity_id, "message": f"{self.family.label} deleted successfully"}

    async def restore(self, entity_id: str) -> Dict[str, Any]:
        entity_id = ensure_uuid(entity_id)
        entity = await self.repository.restore(entity_id)
        await self.invalidator.invalidate(entity_id)
        return entity

    async def hard_delete(self, entity_id: str) -> Dict[str, Any]:
        entity_id = ensure_uuid(entity_id)
        await self.repository.hard_delete(entity_id)
        await self.invalidator.invalidate(entity_id)
        if self.children is not None:
            # child rows go with the parent (ON DELETE CASCADE)
            await self.children.invalidator.invalidate_family()
        return {"id": entity_id, "message": f"{self.family.label} permanently deleted"}

    async def update_status(self, entity_id: str, status: str) -> Dict[str, Any]:
        entity_id = ensure_uuid(entity_id)
        status = _enum_value(EntityStatus, status, "status")
        if status is None:
            raise BadRequestError("status is required")
        entity = await self.repository.update_status(entity_id, status)
        await self.invalidator.invalidate(entity_id)
        return entity

    async def update_sort_order(self, updates: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Bulk sort-order update.

        Args:
            updates: Items with "id" and "sort_order"

        Returns:
            {"message", "updated"}
        """
        pairs = []
        for item in updates:
            try:
                sort_order = int(item["sort_order"])
            except (KeyError, TypeError, ValueError):
                raise BadRequestError("Each update needs an integer sort_order")
            if sort_order < 0:
                raise BadRequestError("sort_order must be >= 0")
            pairs.append((ensure_uuid(item.get("id")), sort_order))
        if not pairs:
            raise BadRequestError("updates must not be empty")

        updated = await self.repository.bulk_update_sort_order(pairs)
        await self.invalidator.invalidate(extra_ids=[entity_id for entity_id, _ in pairs])
        return {"message": f"{self.family.label} sort order updated", "updated": updated}

    async def bulk_create(self, items: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        items = [self._check_parent_id(dict(item)) for item in items]
        if not items:
            raise BadRequestError("items must not be empty")
        created = await self.repository.bulk_create(items)
        await self.invalidator.invalidate(extra_ids=[entity["id"] for entity in created])
        logger.info(f"Bulk created {len(created)} {self.family.label_plural.lower()}")
        return created

    def _check_parent_id(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("parent_id"):
            if not self.family.has_parent:
                raise BadRequestError(f"{self.family.label_plural} cannot have a parent")
            data["parent_id"] = ensure_uuid(data["parent_id"], "parent_id")
        return data
