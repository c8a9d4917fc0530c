"""Cache key builders for the taxonomy entity families.

This module provides functions to build consistent, namespaced cache keys
for every read operation served through the read-through cache.

Key Naming Convention:
    - Use colons (:) to separate namespaces
    - Format: {family}:{view}[:{name}:{value}...]
    - Examples:
        - categories:all:page:1:limit:10
        - categories:id:550e8400-e29b-41d4-a716-446655440000
        - subcategories:slug:running-shoes
        - collections:stats

Every family-wide view has a fixed anchor (``<ns>:all``, ``<ns>:stats``,
``<ns>:gender``, ``<ns>:with-subcategories``). Parameterised keys always
extend their anchor with the separator, so prefix deletion of
``anchor + ":"`` reaches every variant.

Usage:
    from category_service.cache.keys import build_key, FamilyKeys

    build_key("categories:all", {"page": 1, "limit": 10})
    # Returns: "categories:all:page:1:limit:10"

    keys = FamilyKeys("categories")
    keys.detail_key("550e8400-e29b-41d4-a716-446655440000")
    # Returns: "categories:id:550e8400-e29b-41d4-a716-446655440000"
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional

from category_service import config

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ":"
MAX_KEY_LENGTH = 250

_WHITESPACE = re.compile(r"\s")

# Family namespaces
NAMESPACE_CATEGORIES = "categories"
NAMESPACE_SUBCATEGORIES = "subcategories"
NAMESPACE_COLLECTIONS = "collections"
NAMESPACE_GENDER = "gender"

# View names inside a family namespace
VIEW_ALL = "all"
VIEW_ID = "id"
VIEW_SLUG = "slug"
VIEW_GENDER = "gender"
VIEW_PARENT = "parent"
VIEW_STATS = "stats"
VIEW_WITH_SUBCATEGORIES = "with-subcategories"
VIEW_VALIDATION = "validation"


def ttl_setting(value: Optional[int], default: int) -> int:
    """Configured TTL, or default when unset. 0 is kept (expire immediately)."""
    return default if value is None else value


class CacheTTL(IntEnum):
    """TTL classes in seconds, one per kind of read operation."""

    LIST = ttl_setting(config.CACHE_TTL_LIST, 300)
    DETAIL = ttl_setting(config.CACHE_TTL_DETAIL, 600)
    STATS = ttl_setting(config.CACHE_TTL_STATS, 900)
    VALIDATION = ttl_setting(config.CACHE_TTL_VALIDATION, 60)


# ============================================================================
# Generic Key Builder
# ============================================================================


def _percent(char: str) -> str:
    return "".join(f"%{byte:02X}" for byte in char.encode("utf-8"))


def _escape(text: str, separator: str) -> str:
    """Percent-escape the escape char, the separator and whitespace inside a value."""
    escaped = text.replace("%", "%25")
    for char in separator:
        escaped = escaped.replace(char, _percent(char))
    return _WHITESPACE.sub(lambda match: _percent(match.group()), escaped)


def _stringify(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return str(value)


def build_key(
    base_key: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    prefix: Optional[str] = None,
    suffix: Optional[str] = None,
    separator: str = DEFAULT_SEPARATOR,
    sort_params: bool = False,
) -> str:
    """
    Build a cache key from a base namespace and a parameter mapping.

    Parameters are appended as ``name<sep>value`` in the mapping's iteration
    order (or sorted by name when ``sort_params`` is set). ``None`` values are
    skipped. Lists and dicts are JSON-encoded. Separator and whitespace
    characters inside a value are percent-escaped so they cannot be confused
    with key structure.

    Args:
        base_key: Namespace the key starts with, e.g. "categories:all"
        params: Named parameters to encode into the key
        prefix: Optional segment placed before base_key
        suffix: Optional segment placed after the parameters
        separator: Segment separator (default ":")
        sort_params: Sort parameter names before encoding

    Returns:
        The assembled cache key

    Raises:
        ValueError: If base_key is empty

    Example:
        >>> build_key("categories:all", {"page": 1, "limit": 10})
        'categories:all:page:1:limit:10'
        >>> build_key("categories:all", {"limit": 10, "page": 1}, sort_params=True)
        'categories:all:limit:10:page:1'
    """
    if not base_key:
        raise ValueError("base_key is required")

    parts = []
    if prefix:
        parts.append(prefix)
    parts.append(base_key)

    items = list((params or {}).items())
    if sort_params:
        items.sort(key=lambda item: item[0])

    for name, value in items:
        if value is None:
            continue
        parts.append(f"{name}{separator}{_escape(_stringify(value), separator)}")

    if suffix:
        parts.append(suffix)

    return separator.join(parts)


def validate_key(key: str) -> bool:
    """
    Validate cache key format.

    Args:
        key: Cache key to validate

    Returns:
        True if the key is non-empty, has no whitespace and is at most 250 chars

    Example:
        >>> validate_key("categories:id:abc")
        True
        >>> validate_key("categories:id:a b")
        False
    """
    if not key or len(key) > MAX_KEY_LENGTH:
        return False
    return not any(char.isspace() for char in key)


def parse_key(key: str, separator: str = DEFAULT_SEPARATOR) -> Dict[str, Any]:
    """
    Split a cache key into its namespace and remaining segments.

    Example:
        >>> parse_key("categories:id:abc")
        {'namespace': 'categories', 'view': 'id', 'segments': ['abc']}
    """
    parts = key.split(separator)
    return {
        "namespace": parts[0],
        "view": parts[1] if len(parts) > 1 else None,
        "segments": parts[2:],
    }


# ============================================================================
# Typed Family Keys
# ============================================================================


@dataclass(frozen=True)
class FamilyKeys:
    """
    Typed key builders for one entity family.

    Each read operation has its own method, so the shape of every key the
    service can produce is enumerable from this class alone.

    Example:
        >>> keys = FamilyKeys("categories")
        >>> keys.list_key(page=2, limit=10, filters={"status": "active"})
        'categories:all:page:2:limit:10:status:active'
        >>> keys.stats_key()
        'categories:stats'
    """

    namespace: str
    separator: str = DEFAULT_SEPARATOR

    def anchor(self, view: str) -> str:
        """Family-wide base key for a view, e.g. ``categories:all``."""
        return f"{self.namespace}{self.separator}{view}"

    def list_key(self, page: int, limit: int, filters: Optional[Mapping[str, Any]] = None) -> str:
        # page and limit first, then filters by name
        params: Dict[str, Any] = {"page": page, "limit": limit}
        for name in sorted(filters or {}):
            params[name] = filters[name]
        return build_key(self.anchor(VIEW_ALL), params, separator=self.separator)

    def detail_key(self, entity_id: str, include_children: bool = False) -> str:
        if not entity_id:
            raise ValueError("entity_id is required")
        key = self.entity_key(entity_id)
        if include_children:
            key = f"{key}{self.separator}{VIEW_WITH_SUBCATEGORIES}"
        return key

    def entity_key(self, entity_id: str) -> str:
        """Entity-scoped key ``<ns>:id:<entity_id>`` (without variants)."""
        return f"{self.anchor(VIEW_ID)}{self.separator}{_escape(str(entity_id), self.separator)}"

    def slug_key(self, slug: str) -> str:
        if not slug:
            raise ValueError("slug is required")
        return f"{self.anchor(VIEW_SLUG)}{self.separator}{_escape(slug, self.separator)}"

    def gender_key(self, gender: str) -> str:
        return build_key(self.anchor(VIEW_GENDER), {"gender": gender}, separator=self.separator)

    def parent_key(self, parent_id: str) -> str:
        return f"{self.anchor(VIEW_PARENT)}{self.separator}{_escape(str(parent_id), self.separator)}"

    def stats_key(self) -> str:
        return self.anchor(VIEW_STATS)

    def with_children_key(self) -> str:
        return self.anchor(VIEW_WITH_SUBCATEGORIES)

    def validation_key(self, name: str, slug: Optional[str] = None, exclude_id: Optional[str] = None) -> str:
        return build_key(
            self.anchor(VIEW_VALIDATION),
            {"name": name.strip().lower(), "slug": slug, "exclude": exclude_id},
            separator=self.separator,
        )

    def family_wide_anchors(self) -> tuple:
        """Anchors removed by every invalidation of this family."""
        return (
            self.anchor(VIEW_ALL),
            self.anchor(VIEW_STATS),
            self.anchor(VIEW_GENDER),
            self.anchor(VIEW_WITH_SUBCATEGORIES),
            self.anchor(VIEW_PARENT),
            self.anchor(VIEW_VALIDATION),
        )
