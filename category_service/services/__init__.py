"""Service layer: one TaxonomyService per entity family."""

from typing import Callable, Dict, Optional

from category_service.db.taxonomy_db import TaxonomyRepository
from category_service.families import CATEGORY, COLLECTION, GENDER, SUBCATEGORY, EntityFamily
from category_service.services.taxonomy_service import TaxonomyService


def build_services(
    store,
    repository_factory: Optional[Callable[[EntityFamily], object]] = None,
) -> Dict[str, TaxonomyService]:
    """
    Build the services of every family around one shared store.

    Args:
        store: The process-wide expiring store
        repository_factory: Builds the persistence accessor for a family
            (default: asyncpg TaxonomyRepository)

    Returns:
        Mapping of family name ("category", ...) to its service
    """
    if repository_factory is None:
        repository_factory = TaxonomyRepository

    subcategories = TaxonomyService(SUBCATEGORY, repository_factory(SUBCATEGORY), store)
    return {
        CATEGORY.name: TaxonomyService(
            CATEGORY, repository_factory(CATEGORY), store, children=subcategories
        ),
        SUBCATEGORY.name: subcategories,
        COLLECTION.name: TaxonomyService(COLLECTION, repository_factory(COLLECTION), store),
        GENDER.name: TaxonomyService(GENDER, repository_factory(GENDER), store),
    }


__all__ = ["TaxonomyService", "build_services"]
