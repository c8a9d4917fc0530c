"""Persistence accessor for taxonomy entities.

One table per family, all with the same columns (see storage/schema.py).
Reads are side-effect free. Writes return the post-write entity or raise
NotFoundError / ConflictError. Rows come back as JSON-ready dicts: ids and
timestamps are strings, so a value read from the cache compares equal to one
read from the database.
"""

import logging
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import asyncpg

from category_service.db.helpers import (
    affected_rows,
    execute_with_returning,
    fetch_all,
    fetch_one,
    fetch_val,
    transaction,
)
from category_service.db.query_builders import SelectQuery, build_insert, build_update
from category_service.errors import BadRequestError, ConflictError, NotFoundError
from category_service.families import EntityFamily, get_family
from category_service.models import SORTABLE_FIELDS
from category_service.utils.slug import slugify

logger = logging.getLogger(__name__)

# Writable columns
ENTITY_COLUMNS = (
    "name",
    "description",
    "status",
    "applicable_genders",
    "has_subcategories",
    "sort_order",
    "metadata",
    "image_url",
    "icon",
    "parent_id",
)

# Columns that may be cleared by an update
NULLABLE_COLUMNS = ("description", "image_url", "icon", "parent_id")

SUMMARY_COLUMNS = ("id", "name", "slug", "status", "created_at", "updated_at")


def _plain(value: Any) -> Any:
    """Enums to their values, recursively through lists."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def row_to_entity(row: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a database row into a JSON-ready entity dict."""
    entity = {}
    for column, value in row.items():
        if isinstance(value, UUID):
            value = str(value)
        elif isinstance(value, (datetime, date)):
            value = value.isoformat()
        entity[column] = value
    if "applicable_genders" in entity:
        entity["applicable_genders"] = list(entity["applicable_genders"] or [])
    if "metadata" in entity:
        entity["metadata"] = entity["metadata"] or {}
    return entity


class TaxonomyRepository:
    """
    asyncpg-backed accessor for one entity family.

    Example:
        repository = TaxonomyRepository(CATEGORY)
        page = await repository.find_page({"status": "active"}, "name", "asc", 1, 10)
        entity = await repository.create({"name": "Running Shoes"})
    """

    def __init__(self, family: EntityFamily):
        self.family = family
        self.table = family.table
        self.label = family.label

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _base(self, include_deleted: bool = False) -> SelectQuery:
        query = SelectQuery(self.table)
        if not include_deleted:
            query = query.where("NOT is_deleted")
        return query

    def _active(self) -> SelectQuery:
        return self._base().where("status = $1", "active")

    async def find_page(
        self,
        filters: Dict[str, Any],
        sort_by: str = "sort_order",
        sort_order: str = "asc",
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        Filtered, sorted page of entities.

        Args:
            filters: status, gender, has_subcategories, parent_id, search,
                include_deleted (all optional)
            sort_by: One of SORTABLE_FIELDS
            sort_order: "asc" or "desc"
            page: 1-based page number
            limit: Page size

        Returns:
            {"items": [...], "pagination": {page, limit, total, total_pages,
            has_next, has_prev}}
        """
        if sort_by not in SORTABLE_FIELDS:
            raise BadRequestError(f"Cannot sort by '{sort_by}'")
        direction = "DESC" if str(sort_order).lower() == "desc" else "ASC"

        query = self._base(include_deleted=bool(filters.get("include_deleted")))
        if filters.get("status"):
            query = query.where("status = $1", _plain(filters["status"]))
        if filters.get("gender"):
            query = query.where("$1 = ANY(applicable_genders)", _plain(filters["gender"]))
        if filters.get("has_subcategories") is not None:
            query = query.where("has_subcategories = $1", bool(filters["has_subcategories"]))
        if filters.get("parent_id"):
            query = query.where("parent_id = $1", filters["parent_id"])
        if filters.get("search"):
            pattern = f"%{_escape_like(filters['search'])}%"
            query = query.where(
                "(name ILIKE $1 OR description ILIKE $1 OR slug ILIKE $1)", pattern
            )

        count_sql, count_params = query.count().build()
        total = await fetch_val(count_sql, *count_params) or 0

        page_sql, page_params = (
            query.order_by(f"{sort_by} {direction}, id ASC")
            .limit(limit)
            .offset((page - 1) * limit)
            .build()
        )
        rows = await fetch_all(page_sql, *page_params)

        total_pages = math.ceil(total / limit) if limit else 0
        return {
            "items": [row_to_entity(row) for row in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }

    async def find_by_id(self, entity_id: str, include_deleted: bool = False) -> Dict[str, Any]:
        sql, params = self._base(include_deleted).where("id = $1", entity_id).build()
        row = await fetch_one(sql, *params)
        if row is None:
            raise NotFoundError(f"{self.label} with id '{entity_id}' not found")
        return row_to_entity(row)

    async def find_by_slug(self, slug: str) -> Dict[str, Any]:
        sql, params = self._base().where("slug = $1", slug).build()
        row = await fetch_one(sql, *params)
        if row is None:
            raise NotFoundError(f"{self.label} with slug '{slug}' not found")
        return row_to_entity(row)

    async def _find_active(self, query: SelectQuery) -> List[Dict[str, Any]]:
        sql, params = query.order_by("sort_order ASC, name ASC").build()
        return [row_to_entity(row) for row in await fetch_all(sql, *params)]

    async def find_by_gender(self, gender: str) -> List[Dict[str, Any]]:
        return await self._find_active(
            self._active().where("$1 = ANY(applicable_genders)", _plain(gender))
        )

    async def find_with_children(self) -> List[Dict[str, Any]]:
        return await self._find_active(self._active().where("has_subcategories"))

    async def find_by_parent(self, parent_id: str) -> List[Dict[str, Any]]:
        return await self._find_active(self._active().where("parent_id = $1", parent_id))

    def _exists_query(
        self,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> Tuple[str, Tuple[Any, ...]]:
        query = self._base().columns("1")
        if name is not None:
            query = query.where("LOWER(name) = LOWER($1)", name)
        if slug is not None:
            query = query.where("slug = $1", slug)
        if exclude_id is not None:
            query = query.where("id <> $1", exclude_id)
        sql, params = query.limit(1).build()
        return f"SELECT EXISTS ({sql})", params

    async def exists(
        self,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """True if a non-deleted record matches (ignoring exclude_id)."""
        if name is None and slug is None:
            raise ValueError("exists() needs a name or a slug")
        sql, params = self._exists_query(name, slug, exclude_id)
        return bool(await fetch_val(sql, *params))

    async def count_by_group(self, dimension: str) -> Dict[str, int]:
        """Non-deleted record counts grouped by "status" or "gender"."""
        if dimension == "status":
            sql = f"SELECT status AS grp, COUNT(*) AS n FROM {self.table} WHERE NOT is_deleted GROUP BY status"
        elif dimension == "gender":
            sql = (
                f"SELECT g AS grp, COUNT(*) AS n FROM {self.table}, "
                f"UNNEST(applicable_genders) AS g WHERE NOT is_deleted GROUP BY g"
            )
        else:
            raise ValueError(f"Unknown grouping dimension: {dimension}")
        rows = await fetch_all(sql)
        return {row["grp"]: row["n"] for row in rows}

    async def get_counts(self) -> Dict[str, int]:
        row = await fetch_one(
            f"""
            SELECT
                COUNT(*) FILTER (WHERE NOT is_deleted) AS total,
                COUNT(*) FILTER (WHERE NOT is_deleted AND status = 'active') AS active,
                COUNT(*) FILTER (WHERE NOT is_deleted AND status = 'inactive') AS inactive,
                COUNT(*) FILTER (WHERE is_deleted) AS deleted,
                COUNT(*) FILTER (WHERE NOT is_deleted AND has_subcategories) AS with_subcategories
            FROM {self.table}
            """
        )
        return {column: int(value or 0) for column, value in (row or {}).items()}

    async def _recent(self, column: str, limit: int) -> List[Dict[str, Any]]:
        sql, params = (
            self._base().columns(*SUMMARY_COLUMNS).order_by(f"{column} DESC").limit(limit).build()
        )
        return [row_to_entity(row) for row in await fetch_all(sql, *params)]

    async def recently_created(self, limit: int = 5) -> List[Dict[str, Any]]:
        return await self._recent("created_at", limit)

    async def recently_updated(self, limit: int = 5) -> List[Dict[str, Any]]:
        return await self._recent("updated_at", limit)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _prepare_new(self, data: Dict[str, Any]) -> Dict[str, Any]:
        record = {
            column: _plain(data[column])
            for column in ENTITY_COLUMNS
            if data.get(column) is not None
        }
        name = (record.get("name") or "").strip()
        if not name:
            raise BadRequestError("name is required")
        record["name"] = name
        record["slug"] = slugify(name)
        if not record["slug"]:
            raise BadRequestError("name must contain at least one letter or digit")
        if self.family.has_parent and not record.get("parent_id"):
            raise BadRequestError(f"{self.label} requires a parent_id")
        return record

    async def _check_parent(self, conn: asyncpg.Connection, parent_id: Optional[str]) -> None:
        if not self.family.has_parent or parent_id is None:
            return
        parent = get_family(self.family.parent)
        found = await conn.fetchval(
            f"SELECT EXISTS (SELECT 1 FROM {parent.table} WHERE id = $1 AND NOT is_deleted)",
            parent_id,
        )
        if not found:
            raise NotFoundError(f"{parent.label} with id '{parent_id}' not found")

    async def _check_unique(
        self,
        conn: asyncpg.Connection,
        name: str,
        slug: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        sql, params = self._exists_query(name=name, exclude_id=exclude_id)
        if await conn.fetchval(sql, *params):
            raise ConflictError(f"{self.label} with name '{name}' already exists")
        sql, params = self._exists_query(slug=slug, exclude_id=exclude_id)
        if await conn.fetchval(sql, *params):
            raise ConflictError(f"{self.label} with slug '{slug}' already exists")

    async def _insert(self, conn: asyncpg.Connection, data: Dict[str, Any]) -> Dict[str, Any]:
        record = self._prepare_new(data)
        await self._check_unique(conn, record["name"], record["slug"])
        await self._check_parent(conn, record.get("parent_id"))

        sql, params = build_insert(self.table, record)
        try:
            row = await conn.fetchrow(sql, *params)
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(f"{self.label} '{record['name']}' already exists") from e
        return row_to_entity(dict(row))

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        async with transaction() as conn:
            return await self._insert(conn, data)

    async def bulk_create(self, items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert all items in one transaction; any conflict aborts the batch."""
        items = list(items)
        seen = set()
        for item in items:
            name = str(item.get("name") or "").strip()
            slug = slugify(name)
            if name.lower() in seen or slug in seen:
                raise ConflictError(f"Duplicate {self.label.lower()} '{name}' in batch")
            seen.update((name.lower(), slug))

        async with transaction() as conn:
            return [await self._insert(conn, item) for item in items]

    async def update(self, entity_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update.

        A new name re-derives the slug; the new name or slug must not belong
        to another non-deleted record.
        """
        async with transaction() as conn:
            current = await conn.fetchrow(
                f"SELECT * FROM {self.table} WHERE id = $1 AND NOT is_deleted FOR UPDATE",
                entity_id,
            )
            if current is None:
                raise NotFoundError(f"{self.label} with id '{entity_id}' not found")

            changes = {}
            for column in ENTITY_COLUMNS:
                if column not in patch:
                    continue
                value = _plain(patch[column])
                if value is None and column not in NULLABLE_COLUMNS:
                    continue
                changes[column] = value

            new_name = changes.get("name")
            if new_name is not None and new_name != current["name"]:
                new_slug = slugify(new_name)
                if not new_slug:
                    raise BadRequestError("name must contain at least one letter or digit")
                await self._check_unique(conn, new_name, new_slug, exclude_id=entity_id)
                changes["slug"] = new_slug
            if "parent_id" in changes:
                if self.family.has_parent and changes["parent_id"] is None:
                    raise BadRequestError(f"{self.label} requires a parent_id")
                await self._check_parent(conn, changes["parent_id"])

            if not changes:
                return row_to_entity(dict(current))

            sql, params = build_update(self.table, changes, "id = $1", entity_id)
            try:
                row = await conn.fetchrow(sql, *params)
            except asyncpg.UniqueViolationError as e:
                raise ConflictError(f"{self.label} name or slug already in use") from e
            return row_to_entity(dict(row))

    async def soft_delete(self, entity_id: str) -> Dict[str, Any]:
        row = await execute_with_returning(
            f"UPDATE {self.table} SET is_deleted = TRUE, deleted_at = NOW(), updated_at = NOW() "
            f"WHERE id = $1 AND NOT is_deleted RETURNING *",
            entity_id,
        )
        if row is None:
            raise NotFoundError(f"{self.label} with id '{entity_id}' not found")
        return row_to_entity(row)

    async def restore(self, entity_id: str) -> Dict[str, Any]:
        try:
            row = await execute_with_returning(
                f"UPDATE {self.table} SET is_deleted = FALSE, deleted_at = NULL, updated_at = NOW() "
                f"WHERE id = $1 AND is_deleted RETURNING *",
                entity_id,
            )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(f"An active {self.label.lower()} already uses this name or slug") from e
        if row is None:
            raise NotFoundError(f"{self.label} not found or not deleted")
        return row_to_entity(row)

    async def hard_delete(self, entity_id: str) -> Dict[str, Any]:
        row = await execute_with_returning(
            f"DELETE FROM {self.table} WHERE id = $1 RETURNING *", entity_id
        )
        if row is None:
            raise NotFoundError(f"{self.label} with id '{entity_id}' not found")
        return row_to_entity(row)

    async def update_status(self, entity_id: str, status: str) -> Dict[str, Any]:
        sql, params = build_update(
            self.table, {"status": _plain(status)}, "id = $1 AND NOT is_deleted", entity_id
        )
        row = await execute_with_returning(sql, *params)
        if row is None:
            raise NotFoundError(f"{self.label} with id '{entity_id}' not found")
        return row_to_entity(row)

    async def bulk_update_sort_order(self, pairs: Iterable[Tuple[str, int]]) -> int:
        """Set sort_order for each (id, sort_order) pair; returns rows updated."""
        updated = 0
        async with transaction() as conn:
            for entity_id, sort_order in pairs:
                status = await conn.execute(
                    f"UPDATE {self.table} SET sort_order = $1, updated_at = NOW() "
                    f"WHERE id = $2 AND NOT is_deleted",
                    sort_order,
                    entity_id,
                )
                updated += affected_rows(status)
        return updated
