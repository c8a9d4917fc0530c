"""Tests for cache key builders (category_service/cache/keys.py)."""

import pytest

from category_service.cache.keys import (
    MAX_KEY_LENGTH,
    FamilyKeys,
    build_key,
    parse_key,
    ttl_setting,
    validate_key,
)
from category_service.models import Gender


@pytest.mark.unit
class TestBuildKey:
    def test_list_key_literal(self):
        assert build_key("categories:all", {"page": 1, "limit": 10}) == "categories:all:page:1:limit:10"

    def test_same_inputs_same_key(self):
        first = build_key("categories:all", {"page": 1, "limit": 10})
        second = build_key("categories:all", {"page": 1, "limit": 10})
        assert first == second

    def test_different_page_different_key(self):
        page_one = build_key("categories:all", {"page": 1, "limit": 10})
        page_two = build_key("categories:all", {"page": 2, "limit": 10})
        assert page_one != page_two
        assert not page_two.startswith(page_one + ":")

    def test_insertion_order_matters_unless_sorted(self):
        a = build_key("categories:all", {"page": 1, "limit": 10})
        b = build_key("categories:all", {"limit": 10, "page": 1})
        assert a != b
        assert build_key("categories:all", {"page": 1, "limit": 10}, sort_params=True) == build_key(
            "categories:all", {"limit": 10, "page": 1}, sort_params=True
        )

    def test_none_values_skipped(self):
        assert build_key("categories:all", {"page": 1, "status": None}) == "categories:all:page:1"

    def test_prefix_and_suffix(self):
        key = build_key("stats", {"v": 2}, prefix="categories", suffix="full")
        assert key == "categories:stats:v:2:full"

    def test_custom_separator(self):
        assert build_key("categories/all", {"page": 1}, separator="/") == "categories/all/page/1"

    def test_separator_in_value_is_escaped(self):
        key = build_key("categories:all", {"search": "a:b"})
        assert key == "categories:all:search:a%3Ab"
        assert len(key.split(":")) == 4

    def test_percent_is_escaped_first(self):
        assert build_key("x", {"q": "50%"}) == "x:q:50%25"

    def test_whitespace_in_value_is_escaped(self):
        key = build_key("categories:all", {"search": "trail shoes\tmen"})
        assert key == "categories:all:search:trail%20shoes%09men"
        assert validate_key(key) is True

    def test_value_stringification(self):
        assert build_key("x", {"flag": True}) == "x:flag:true"
        assert build_key("x", {"gender": Gender.MEN}) == "x:gender:men"
        assert build_key("x", {"genders": ["men", "women"]}) == 'x:genders:["men","women"]'

    def test_empty_base_raises(self):
        with pytest.raises(ValueError):
            build_key("", {"page": 1})


@pytest.mark.unit
class TestValidateAndParse:
    def test_validate_key(self):
        assert validate_key("categories:id:abc") is True
        assert validate_key("categories:id:a b") is False
        assert validate_key("") is False
        assert validate_key("k" * (MAX_KEY_LENGTH + 1)) is False
        assert validate_key("k" * MAX_KEY_LENGTH) is True

    def test_parse_key(self):
        assert parse_key("categories:id:abc") == {
            "namespace": "categories",
            "view": "id",
            "segments": ["abc"],
        }
        assert parse_key("categories") == {"namespace": "categories", "view": None, "segments": []}


@pytest.mark.unit
class TestFamilyKeys:
    keys = FamilyKeys("categories")

    def test_list_key_orders_filters_by_name(self):
        a = self.keys.list_key(1, 10, {"status": "active", "gender": "men"})
        b = self.keys.list_key(1, 10, {"gender": "men", "status": "active"})
        assert a == b == "categories:all:page:1:limit:10:gender:men:status:active"

    def test_list_key_without_filters(self):
        assert self.keys.list_key(1, 10) == "categories:all:page:1:limit:10"

    def test_detail_keys(self):
        assert self.keys.detail_key("abc") == "categories:id:abc"
        assert self.keys.detail_key("abc", include_children=True) == "categories:id:abc:with-subcategories"
        with pytest.raises(ValueError):
            self.keys.detail_key("")

    def test_view_keys(self):
        assert self.keys.slug_key("running-shoes") == "categories:slug:running-shoes"
        assert self.keys.gender_key("men") == "categories:gender:gender:men"
        assert self.keys.parent_key("p1") == "categories:parent:p1"
        assert self.keys.stats_key() == "categories:stats"
        assert self.keys.with_children_key() == "categories:with-subcategories"

    def test_validation_key_normalises_name(self):
        assert self.keys.validation_key("  Shoes ") == self.keys.validation_key("shoes")
        assert self.keys.validation_key("Shoes", "shoes", "id1") == (
            "categories:validation:name:shoes:slug:shoes:exclude:id1"
        )

    def test_validation_key_for_multi_word_name_is_valid(self):
        key = self.keys.validation_key("Running Shoes", "running-shoes")
        assert key == "categories:validation:name:running%20shoes:slug:running-shoes"
        assert validate_key(key) is True

    def test_list_key_with_spaced_search_is_valid(self):
        assert validate_key(self.keys.list_key(1, 10, {"search": "running shoes"})) is True

    def test_every_parameterised_key_extends_an_anchor(self):
        anchors = self.keys.family_wide_anchors()
        produced = [
            self.keys.list_key(3, 20, {"search": "x"}),
            self.keys.gender_key("women"),
            self.keys.parent_key("p1"),
            self.keys.validation_key("Shoes", "shoes"),
        ]
        for key in produced:
            assert any(key.startswith(anchor + ":") for anchor in anchors), key
        assert self.keys.stats_key() in anchors
        assert self.keys.with_children_key() in anchors


@pytest.mark.unit
class TestTTLSetting:
    def test_unset_uses_default(self):
        assert ttl_setting(None, 300) == 300

    def test_zero_is_kept(self):
        assert ttl_setting(0, 300) == 0

    def test_configured_value_wins(self):
        assert ttl_setting(45, 300) == 45
