"""Entity rows and mock repositories for service, API and messaging tests."""

import uuid
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

from category_service.db.taxonomy_db import TaxonomyRepository


def make_entity(name: str = "Running Shoes", **overrides) -> Dict[str, Any]:
    """Build an entity dict shaped like TaxonomyRepository rows."""
    slug = name.lower().replace(" ", "-")
    entity = {
        "id": str(uuid.uuid4()),
        "name": name,
        "slug": slug,
        "description": None,
        "status": "active",
        "applicable_genders": ["unisex"],
        "has_subcategories": False,
        "sort_order": 0,
        "metadata": {},
        "image_url": None,
        "icon": None,
        "parent_id": None,
        "is_deleted": False,
        "deleted_at": None,
        "created_at": "2026-01-01T00:00:00+00:00",
        "updated_at": "2026-01-01T00:00:00+00:00",
    }
    entity.update(overrides)
    return entity


def make_repository() -> MagicMock:
    """AsyncMock repository with the TaxonomyRepository surface and empty results."""
    repository = MagicMock(spec=TaxonomyRepository)
    repository.find_page = AsyncMock(
        return_value={
            "items": [],
            "pagination": {
                "page": 1,
                "limit": 10,
                "total": 0,
                "total_pages": 0,
                "has_next": False,
                "has_prev": False,
            },
        }
    )
    repository.find_by_id = AsyncMock()
    repository.find_by_slug = AsyncMock()
    repository.find_by_gender = AsyncMock(return_value=[])
    repository.find_with_children = AsyncMock(return_value=[])
    repository.find_by_parent = AsyncMock(return_value=[])
    repository.exists = AsyncMock(return_value=False)
    repository.count_by_group = AsyncMock(return_value={})
    repository.get_counts = AsyncMock(
        return_value={"total": 0, "active": 0, "inactive": 0, "deleted": 0, "with_subcategories": 0}
    )
    repository.recently_created = AsyncMock(return_value=[])
    repository.recently_updated = AsyncMock(return_value=[])
    repository.create = AsyncMock()
    repository.bulk_create = AsyncMock(return_value=[])
    repository.update = AsyncMock()
    repository.soft_delete = AsyncMock()
    repository.restore = AsyncMock()
    repository.hard_delete = AsyncMock()
    repository.update_status = AsyncMock()
    repository.bulk_update_sort_order = AsyncMock(return_value=0)
    return repository
