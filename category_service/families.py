"""Entity families served by the service.

Every family shares the same table shape, CRUD operations and cache layout;
they differ only in naming, table and (for subcategories) the parent family.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from category_service.cache.keys import (
    FamilyKeys,
    NAMESPACE_CATEGORIES,
    NAMESPACE_COLLECTIONS,
    NAMESPACE_GENDER,
    NAMESPACE_SUBCATEGORIES,
)


@dataclass(frozen=True)
class EntityFamily:
    """Static description of one entity family."""

    name: str
    namespace: str
    table: str
    label: str
    label_plural: str
    parent: Optional[str] = None

    @property
    def keys(self) -> FamilyKeys:
        return FamilyKeys(self.namespace)

    @property
    def has_parent(self) -> bool:
        return self.parent is not None


CATEGORY = EntityFamily(
    name="category",
    namespace=NAMESPACE_CATEGORIES,
    table="categories",
    label="Category",
    label_plural="Categories",
)

SUBCATEGORY = EntityFamily(
    name="subcategory",
    namespace=NAMESPACE_SUBCATEGORIES,
    table="subcategories",
    label="Subcategory",
    label_plural="Subcategories",
    parent="category",
)

COLLECTION = EntityFamily(
    name="collection",
    namespace=NAMESPACE_COLLECTIONS,
    table="collections",
    label="Collection",
    label_plural="Collections",
)

GENDER = EntityFamily(
    name="gender",
    namespace=NAMESPACE_GENDER,
    table="genders",
    label="Gender",
    label_plural="Genders",
)

FAMILIES: Dict[str, EntityFamily] = {
    family.name: family for family in (CATEGORY, SUBCATEGORY, COLLECTION, GENDER)
}


def get_family(name: str) -> EntityFamily:
    """Look up a family by name ("category", "subcategory", ...)."""
    try:
        return FAMILIES[name]
    except KeyError:
        raise ValueError(f"Unknown entity family: {name}")
