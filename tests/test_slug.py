"""Tests for slug helpers (category_service/utils/slug.py)."""

import pytest

from category_service.utils.slug import (
    generate_unique_slug,
    is_valid_slug,
    slugify,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "text,expected",
    [
        ("Running Shoes", "running-shoes"),
        ("Men's Running Shoes", "mens-running-shoes"),
        ("Été Collection", "ete-collection"),
        ("  T-Shirts & Tops  ", "t-shirts-tops"),
        ("snake_case_name", "snake-case-name"),
        ("", ""),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


@pytest.mark.unit
def test_is_valid_slug():
    assert is_valid_slug("running-shoes")
    assert not is_valid_slug("Running-Shoes")
    assert not is_valid_slug("double--hyphen")
    assert not is_valid_slug("-leading")
    assert not is_valid_slug("")
    assert not is_valid_slug("a" * 101)


@pytest.mark.asyncio
@pytest.mark.unit
class TestGenerateUniqueSlug:
    async def test_free_base_is_returned(self):
        async def exists(candidate):
            return False

        assert await generate_unique_slug("shoes", exists) == "shoes"

    async def test_first_free_numeric_suffix(self):
        taken = {"shoes", "shoes-1", "shoes-2"}

        async def exists(candidate):
            return candidate in taken

        assert await generate_unique_slug("shoes", exists) == "shoes-3"

    async def test_timestamp_fallback(self):
        async def exists(candidate):
            return True

        slug = await generate_unique_slug("shoes", exists, max_attempts=3, clock=lambda: 1700000000.5)
        assert slug == "shoes-1700000000500"

    async def test_empty_base_uses_placeholder(self):
        async def exists(candidate):
            return False

        assert await generate_unique_slug("", exists) == "item"

    async def test_numeric_name_keeps_its_number(self):
        taken = {"summer-2024"}

        async def exists(candidate):
            return candidate in taken

        assert await generate_unique_slug("summer-2024", exists) == "summer-2024-1"

    async def test_base_taken_skips_base_lookup(self):
        checked = []

        async def exists(candidate):
            checked.append(candidate)
            return False

        assert await generate_unique_slug("shoes", exists, base_taken=True) == "shoes-1"
        assert checked == ["shoes-1"]
