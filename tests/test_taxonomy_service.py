"""Tests for TaxonomyService (category_service/services/taxonomy_service.py).

Repositories are AsyncMocks (see conftest.py); the store is a real
MemoryStore on a fake clock, so cache hits are observed as skipped
repository calls.
"""

import uuid

import pytest

from category_service.cache.keys import validate_key
from category_service.errors import BadRequestError, ConflictError, NotFoundError
from tests.fixtures.entities import make_entity


def new_id() -> str:
    return str(uuid.uuid4())


# ==================== Reads ====================


@pytest.mark.asyncio
@pytest.mark.unit
class TestReads:
    async def test_find_all_is_cached_per_query(self, services, repositories):
        service = services["category"]

        await service.find_all({"page": "1", "limit": "10"})
        await service.find_all({"page": 1, "limit": 10})
        await service.find_all({"page": 2, "limit": 10})

        assert repositories["category"].find_page.await_count == 2

    async def test_find_all_passes_normalized_query(self, services, repositories):
        await services["category"].find_all(
            {"status": "active", "gender": "men", "search": "  Shoes ", "sort_by": "name", "sort_order": "desc"}
        )

        repositories["category"].find_page.assert_awaited_once_with(
            {"status": "active", "gender": "men", "search": "shoes"}, "name", "desc", 1, 10
        )

    @pytest.mark.parametrize(
        "query",
        [
            {"page": 0},
            {"limit": 101},
            {"page": "abc"},
            {"sort_by": "password"},
            {"sort_order": "sideways"},
            {"status": "unknown"},
            {"gender": "kids"},
            {"search": "x"},
            {"has_subcategories": "maybe"},
            {"parent_id": "not-a-uuid"},
        ],
    )
    async def test_invalid_query_is_rejected(self, services, query):
        with pytest.raises(BadRequestError):
            await services["category"].find_all(query)

    async def test_find_one_is_cached(self, services, repositories, store):
        entity = make_entity()
        repositories["category"].find_by_id.return_value = entity
        service = services["category"]

        assert await service.find_one(entity["id"]) == entity
        assert await service.find_one(entity["id"]) == entity

        repositories["category"].find_by_id.assert_awaited_once_with(entity["id"])
        assert f"categories:id:{entity['id']}" in store

    async def test_find_one_with_subcategories(self, services, repositories, store):
        category = make_entity("Shoes", has_subcategories=True)
        child = make_entity("Trail", parent_id=category["id"])
        repositories["category"].find_by_id.return_value = dict(category)
        repositories["subcategory"].find_by_parent.return_value = [child]

        result = await services["category"].find_one(category["id"], include_children=True)

        assert result["subcategories"] == [child]
        repositories["subcategory"].find_by_parent.assert_awaited_once_with(category["id"])
        assert f"categories:id:{category['id']}:with-subcategories" in store

    async def test_find_one_rejects_malformed_id(self, services, repositories):
        with pytest.raises(BadRequestError):
            await services["category"].find_one("123")
        repositories["category"].find_by_id.assert_not_awaited()

    async def test_not_found_is_not_cached(self, services, repositories, store):
        repositories["category"].find_by_id.side_effect = NotFoundError("Category not found")
        entity_id = new_id()

        with pytest.raises(NotFoundError):
            await services["category"].find_one(entity_id)
        with pytest.raises(NotFoundError):
            await services["category"].find_one(entity_id)

        assert repositories["category"].find_by_id.await_count == 2
        assert len(store) == 0

    async def test_find_by_slug_normalizes(self, services, repositories, store):
        repositories["category"].find_by_slug.return_value = make_entity()

        await services["category"].find_by_slug(" Running-Shoes ")

        repositories["category"].find_by_slug.assert_awaited_once_with("running-shoes")
        assert "categories:slug:running-shoes" in store

    async def test_find_by_gender(self, services, repositories, store):
        await services["category"].find_by_gender("women")

        repositories["category"].find_by_gender.assert_awaited_once_with("women")
        assert "categories:gender:gender:women" in store
        with pytest.raises(BadRequestError):
            await services["category"].find_by_gender("kids")

    async def test_find_with_subcategories_is_cached(self, services, repositories):
        await services["category"].find_with_subcategories()
        await services["category"].find_with_subcategories()

        assert repositories["category"].find_with_children.await_count == 1

    async def test_find_by_parent_only_for_child_family(self, services, repositories):
        parent_id = new_id()
        await services["subcategory"].find_by_parent(parent_id)
        repositories["subcategory"].find_by_parent.assert_awaited_once_with(parent_id)

        with pytest.raises(BadRequestError):
            await services["category"].find_by_parent(parent_id)

    async def test_get_stats_shape(self, services, repositories):
        repository = repositories["category"]
        repository.get_counts.return_value = {
            "total": 5,
            "active": 3,
            "inactive": 1,
            "deleted": 1,
            "with_subcategories": 2,
        }
        repository.count_by_group.side_effect = lambda dimension: {
            "status": {"active": 3, "inactive": 1},
            "gender": {"men": 2, "unisex": 4},
        }[dimension]

        stats = await services["category"].get_stats()

        assert stats["total"] == 5
        assert stats["without_subcategories"] == 3
        assert stats["by_status"] == {"active": 3, "inactive": 1, "archived": 0}
        assert stats["by_gender"] == {"men": 2, "women": 0, "unisex": 4}
        assert stats["recently_created"] == []
        assert stats["recently_updated"] == []

        await services["category"].get_stats()
        assert repository.get_counts.await_count == 1


# ==================== Validation ====================


@pytest.mark.asyncio
@pytest.mark.unit
class TestValidate:
    async def test_available(self, services):
        result = await services["category"].validate("Running Shoes")

        assert result["name_available"] is True
        assert result["slug_available"] is True
        assert result["suggested_slug"] is None

    async def test_taken_slug_gets_suggestion(self, services, repositories):
        taken = {"shoes", "shoes-1"}

        async def exists(name=None, slug=None, exclude_id=None):
            return slug in taken

        repositories["category"].exists.side_effect = exists

        result = await services["category"].validate("Shoes")

        assert result["name_available"] is True
        assert result["slug_available"] is False
        assert result["suggested_slug"] == "shoes-2"

    async def test_numeric_name_suggestion_keeps_its_number(self, services, repositories):
        async def exists(name=None, slug=None, exclude_id=None):
            return slug == "summer-2024"

        repositories["category"].exists.side_effect = exists

        result = await services["category"].validate("Summer 2024")

        assert result["slug_available"] is False
        assert result["suggested_slug"] == "summer-2024-1"

    async def test_exclude_id_is_forwarded_to_existence_checks(self, services, repositories):
        own_id = new_id()

        async def exists(name=None, slug=None, exclude_id=None):
            # the name belongs to own_id only
            return exclude_id != own_id

        repositories["category"].exists.side_effect = exists

        mine = await services["category"].validate("Shoes", exclude_id=own_id)
        other = await services["category"].validate("Shoes", exclude_id=new_id())

        assert mine["name_available"] is True and mine["slug_available"] is True
        assert other["name_available"] is False and other["slug_available"] is False
        for call in repositories["category"].exists.await_args_list:
            assert "exclude_id" in call.kwargs

    async def test_result_is_cached(self, services, repositories):
        await services["category"].validate("Shoes")
        await services["category"].validate("  shoes ")

        assert repositories["category"].exists.await_count == 2

    async def test_multi_word_name_result_is_cached(self, services, repositories, store):
        await services["category"].validate("Running Shoes")
        await services["category"].validate("Running Shoes")

        assert repositories["category"].exists.await_count == 2
        assert store.keys("categories:validation:")
        assert all(validate_key(key) for key in store.keys())

    async def test_messages_quote_the_callers_name(self, services, repositories):
        async def exists(name=None, slug=None, exclude_id=None):
            return name is not None

        repositories["category"].exists.side_effect = exists

        first = await services["category"].validate("SHOES")
        second = await services["category"].validate("shoes")

        assert repositories["category"].exists.await_count == 2
        assert "Category name 'SHOES' is already in use" in first["messages"]
        assert "Category name 'shoes' is already in use" in second["messages"]

    async def test_blank_name_rejected(self, services):
        with pytest.raises(BadRequestError):
            await services["category"].validate("   ")


# ==================== Mutations ====================


@pytest.mark.asyncio
@pytest.mark.unit
class TestMutations:
    async def test_create_invalidates_family_views(self, services, repositories, store):
        service = services["category"]
        repositories["category"].create.return_value = make_entity()

        await service.find_all()
        await service.get_stats()
        await service.create({"name": "Running Shoes"})
        await service.find_all()

        assert repositories["category"].find_page.await_count == 2
        assert "categories:stats" not in store

    async def test_create_leaves_other_families_cached(self, services, repositories, store):
        repositories["category"].create.return_value = make_entity()

        await services["collection"].find_all()
        await services["category"].create({"name": "Running Shoes"})

        assert store.keys("collections:")

    async def test_conflict_leaves_cache_untouched(self, services, repositories, store):
        service = services["category"]
        repositories["category"].create.side_effect = ConflictError("Category name already exists")
        await service.find_all()
        cached_keys = store.keys()

        with pytest.raises(ConflictError):
            await service.create({"name": "Running Shoes"})

        assert store.keys() == cached_keys

    async def test_update_invalidates_detail_and_slug(self, services, repositories, store):
        entity = make_entity()
        repositories["category"].find_by_id.return_value = entity
        repositories["category"].find_by_slug.return_value = entity
        repositories["category"].update.return_value = dict(entity, name="Trail Shoes", slug="trail-shoes")
        service = services["category"]

        await service.find_one(entity["id"])
        await service.find_by_slug(entity["slug"])
        updated = await service.update(entity["id"], {"name": "Trail Shoes"})

        assert updated["slug"] == "trail-shoes"
        assert store.keys("categories:id:") == []
        assert store.keys("categories:slug:") == []

    async def test_remove_returns_message(self, services, repositories):
        entity_id = new_id()

        result = await services["category"].remove(entity_id)

        assert result == {"id": entity_id, "message": "Category deleted successfully"}
        repositories["category"].soft_delete.assert_awaited_once_with(entity_id)

    async def test_hard_delete_and_restore(self, services, repositories):
        entity_id = new_id()
        repositories["category"].restore.return_value = make_entity(id=entity_id)

        restored = await services["category"].restore(entity_id)
        result = await services["category"].hard_delete(entity_id)

        assert restored["id"] == entity_id
        assert result["message"] == "Category permanently deleted"

    async def test_hard_delete_drops_cached_subcategories(self, services, repositories, store):
        parent_id = new_id()
        child = make_entity("Road Running", parent_id=parent_id)
        repositories["subcategory"].find_by_id.return_value = child
        children = services["subcategory"]

        await children.find_one(child["id"])
        await children.find_all()
        await services["category"].hard_delete(parent_id)
        await children.find_one(child["id"])

        assert repositories["subcategory"].find_by_id.await_count == 2
        assert store.keys("subcategories:all") == []

    async def test_update_status_validates_value(self, services, repositories):
        entity_id = new_id()
        repositories["category"].update_status.return_value = make_entity(id=entity_id, status="archived")

        await services["category"].update_status(entity_id, "archived")
        repositories["category"].update_status.assert_awaited_once_with(entity_id, "archived")

        with pytest.raises(BadRequestError):
            await services["category"].update_status(entity_id, "deleted")

    async def test_update_sort_order(self, services, repositories, store):
        first, second = new_id(), new_id()
        repositories["category"].bulk_update_sort_order.return_value = 2
        await store.set(f"categories:id:{first}", "{}", 600)

        result = await services["category"].update_sort_order(
            [{"id": first, "sort_order": 1}, {"id": second, "sort_order": "2"}]
        )

        assert result["updated"] == 2
        repositories["category"].bulk_update_sort_order.assert_awaited_once_with([(first, 1), (second, 2)])
        assert f"categories:id:{first}" not in store

    @pytest.mark.parametrize(
        "updates",
        [[], [{"id": "x", "sort_order": 1}], [{"sort_order": -1, "id": str(uuid.uuid4())}]],
    )
    async def test_update_sort_order_rejects_bad_input(self, services, updates):
        with pytest.raises(BadRequestError):
            await services["category"].update_sort_order(updates)

    async def test_bulk_create(self, services, repositories):
        created = [make_entity("A Name"), make_entity("B Name")]
        repositories["category"].bulk_create.return_value = created

        result = await services["category"].bulk_create([{"name": "A Name"}, {"name": "B Name"}])

        assert result == created
        with pytest.raises(BadRequestError):
            await services["category"].bulk_create([])

    async def test_parent_id_only_for_child_family(self, services, repositories):
        parent_id = new_id()
        repositories["subcategory"].create.return_value = make_entity(parent_id=parent_id)

        await services["subcategory"].create({"name": "Trail", "parent_id": parent_id.upper()})
        repositories["subcategory"].create.assert_awaited_once_with({"name": "Trail", "parent_id": parent_id})

        with pytest.raises(BadRequestError):
            await services["category"].create({"name": "Shoes", "parent_id": parent_id})
