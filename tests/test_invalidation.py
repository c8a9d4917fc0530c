"""Tests for the invalidation fan-out (category_service/cache/invalidation.py)."""

from unittest.mock import AsyncMock

import pytest

from category_service.cache.invalidation import CacheInvalidator
from category_service.cache.keys import FamilyKeys

CATEGORY_KEYS = [
    "categories:all",
    "categories:all:page:1:limit:10",
    "categories:all:page:2:limit:10:status:active",
    "categories:stats",
    "categories:gender:gender:men",
    "categories:with-subcategories",
    "categories:parent:p1",
    "categories:validation:name:shoes:slug:shoes",
    "categories:slug:running-shoes",
    "categories:slug:running-shoes:with-subcategories",
    "categories:id:id123",
    "categories:id:id123:with-subcategories",
]

UNRELATED_KEYS = [
    "categories:id:other",
    "categories:id:id1234",
    "subcategories:all:page:1:limit:10",
    "subcategories:stats",
]


async def fill(store, keys):
    for key in keys:
        await store.set(key, '"cached"', 300)


@pytest.mark.asyncio
@pytest.mark.unit
class TestInvalidate:
    async def test_mutation_removes_every_affected_view(self, store):
        await fill(store, CATEGORY_KEYS + UNRELATED_KEYS)
        invalidator = CacheInvalidator(store, FamilyKeys("categories"))

        removed = await invalidator.invalidate("id123")

        assert removed == len(CATEGORY_KEYS)
        for key in CATEGORY_KEYS:
            assert key not in store, key
        assert sorted(store.keys()) == sorted(UNRELATED_KEYS)

    async def test_without_entity_id_keeps_detail_keys(self, store):
        await fill(store, ["categories:stats", "categories:id:id123", "categories:slug:shoes"])

        await CacheInvalidator(store, FamilyKeys("categories")).invalidate()

        assert store.keys() == ["categories:id:id123"]

    async def test_extra_ids_are_invalidated(self, store):
        await fill(store, ["categories:id:a", "categories:id:b", "categories:id:c"])

        await CacheInvalidator(store, FamilyKeys("categories")).invalidate(extra_ids=["a", "b"])

        assert store.keys() == ["categories:id:c"]

    async def test_invalidating_empty_store_is_noop(self, store):
        assert await CacheInvalidator(store, FamilyKeys("categories")).invalidate("id123") == 0

    async def test_store_failures_are_swallowed(self, store):
        await fill(store, ["categories:stats", "categories:id:id123"])
        store.delete_prefix = AsyncMock(side_effect=ConnectionError("redis gone"))

        removed = await CacheInvalidator(store, FamilyKeys("categories")).invalidate("id123")

        assert removed == 2
        assert len(store) == 0

    async def test_invalidate_family_clears_whole_namespace(self, store):
        child_keys = [
            "subcategories:all:page:1:limit:10",
            "subcategories:id:c1",
            "subcategories:slug:road-running",
            "subcategories:parent:id123",
        ]
        await fill(store, CATEGORY_KEYS + child_keys)

        removed = await CacheInvalidator(store, FamilyKeys("subcategories")).invalidate_family()

        assert removed == len(child_keys)
        assert sorted(store.keys()) == sorted(CATEGORY_KEYS)

    async def test_invalidate_family_failure_is_swallowed(self, store):
        await fill(store, ["subcategories:id:c1"])
        store.delete_prefix = AsyncMock(side_effect=ConnectionError("redis gone"))

        assert await CacheInvalidator(store, FamilyKeys("subcategories")).invalidate_family() == 0


@pytest.mark.unit
def test_targets_cover_anchors_slugs_and_entity():
    targets = CacheInvalidator(None, FamilyKeys("categories")).targets("id123")

    assert ("delete", "categories:all") in targets
    assert ("delete_prefix", "categories:all:") in targets
    assert ("delete", "categories:stats") in targets
    assert ("delete_prefix", "categories:slug:") in targets
    assert ("delete", "categories:id:id123") in targets
    assert ("delete_prefix", "categories:id:id123:") in targets
    assert not any(key.startswith("subcategories") for _, key in targets)
