"""Message topics, ``<family>.<operation>``, mirroring the REST operations."""

from typing import List

from category_service.families import FAMILIES, EntityFamily

CREATE = "create"
UPDATE = "update"
DELETE = "delete"
RESTORE = "restore"
HARD_DELETE = "hard_delete"
FIND_ALL = "find_all"
FIND_ONE = "find_one"
FIND_BY_SLUG = "find_by_slug"
FIND_BY_GENDER = "find_by_gender"
FIND_WITH_SUBCATEGORIES = "find_with_subcategories"
FIND_BY_CATEGORY = "find_by_category"
UPDATE_STATUS = "update_status"
UPDATE_SORT_ORDER = "update_sort_order"
BULK_CREATE = "bulk_create"
GET_STATS = "get_stats"
VALIDATE = "validate"

COMMON_OPERATIONS = (
    CREATE,
    UPDATE,
    DELETE,
    RESTORE,
    HARD_DELETE,
    FIND_ALL,
    FIND_ONE,
    FIND_BY_SLUG,
    FIND_BY_GENDER,
    FIND_WITH_SUBCATEGORIES,
    UPDATE_STATUS,
    UPDATE_SORT_ORDER,
    BULK_CREATE,
    GET_STATS,
    VALIDATE,
)


def topic(family: EntityFamily, operation: str) -> str:
    """
    Example:
        >>> topic(CATEGORY, "create")
        'category.create'
    """
    return f"{family.name}.{operation}"


def operations_for(family: EntityFamily) -> List[str]:
    operations = list(COMMON_OPERATIONS)
    if family.has_parent:
        operations.append(FIND_BY_CATEGORY)
    return operations


def all_topics() -> List[str]:
    return [topic(family, op) for family in FAMILIES.values() for op in operations_for(family)]
